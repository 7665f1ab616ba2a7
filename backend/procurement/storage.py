# storage.py
# JSON file record store keyed by integer id. One file per record kind.

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import NotFound, StorageError

logger = logging.getLogger(__name__)

KINDS = ("rfps", "vendors", "proposals")

Row = Dict[str, Any]


class JsonStore:
    def __init__(self, data_dir: Path, kinds=KINDS):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.files = {kind: self.data_dir / f"{kind}.json" for kind in kinds}
        self._lock = threading.Lock()
        for f in self.files.values():
            if not f.exists():
                f.write_text("[]")

    def _read(self, kind: str, for_write: bool = False) -> List[Row]:
        p = self.files[kind]
        try:
            return json.loads(p.read_text())
        except json.JSONDecodeError as e:
            logger.error("Corrupt store file %s: %s", p, e)
            if for_write:
                # rewriting would drop every record still in the file
                raise StorageError(f"Store file {p.name} is corrupt; refusing to write") from e
            return []

    def _write(self, kind: str, rows: List[Row]):
        p = self.files[kind]
        tmp = p.with_suffix(".tmp")
        tmp.write_text(json.dumps(rows, indent=2, default=str))
        tmp.replace(p)

    def create(self, kind: str, row: Row) -> Row:
        with self._lock:
            rows = self._read(kind, for_write=True)
            row = dict(row)
            row["id"] = max((r["id"] for r in rows), default=0) + 1
            rows.append(row)
            self._write(kind, rows)
        return row

    def get(self, kind: str, record_id: int) -> Optional[Row]:
        return next((r for r in self._read(kind) if r["id"] == record_id), None)

    def list(
        self,
        kind: str,
        where: Optional[Callable[[Row], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        rows = self._read(kind)
        if where is not None:
            rows = [r for r in rows if where(r)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        return rows

    def update(self, kind: str, record_id: int, changes: Row) -> Row:
        with self._lock:
            rows = self._read(kind, for_write=True)
            for r in rows:
                if r["id"] == record_id:
                    r.update({k: v for k, v in changes.items() if k != "id"})
                    self._write(kind, rows)
                    return r
        raise NotFound(f"{kind[:-1]} {record_id} not found")
