"""Modelos, errores y utilidades puras del dominio.

Por qué:
- Aquí viven las estructuras de datos estrictas (Pydantic v2) y las funciones
  sin I/O (parser de doblado, formateo de números).
- El dominio no conoce HTTP, SQL ni la CLI: solo conceptos de planillas.
"""
