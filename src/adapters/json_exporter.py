"""Exportación JSON de planillas construidas.

Por qué JSON:
- Permite revisar exactamente lo que se enviaría al manager sin enviarlo.
- Persiste el lote en el mismo formato del endpoint de sync.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import Planilla


def export_planillas_json(*, planillas: Sequence[Planilla], output_path: Path) -> Path:
    """Exporta planillas a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"planillas": [p.a_payload() for p in planillas]}
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
