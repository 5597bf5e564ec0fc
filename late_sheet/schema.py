from __future__ import annotations

import logging
from typing import Dict, Sequence

from .config import ColumnsConfig
from .errors import SchemaResolutionError
from .models import CellKind, CellValue

LOGGER = logging.getLogger(__name__)


def resolve_columns(header: Sequence[CellValue], columns: ColumnsConfig) -> Dict[str, int]:
    """Map every logical column key to its 0-based index in ``header``.

    Labels are compared exactly: no trimming and no case folding. Raises
    :class:`SchemaResolutionError` naming every label that is absent, so the
    caller can abort before touching any row.
    """

    labels = columns.labels()
    indices: Dict[str, int] = {}
    for index, cell in enumerate(header):
        if cell.kind is not CellKind.TEXT:
            continue
        for key, label in labels.items():
            if cell.text == label:
                indices[key] = index

    missing = [label for key, label in labels.items() if key not in indices]
    if missing:
        raise SchemaResolutionError(missing)

    LOGGER.debug("Resolved columns: %s", indices)
    return indices
