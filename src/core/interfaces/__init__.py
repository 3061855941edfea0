"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos
  (base FerraWin, API del manager, archivo de pausa).
- Permite invertir dependencias: el Core depende de abstracciones.
"""
