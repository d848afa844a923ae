"""
Durable operator annotations keyed by service id or interface name.

All four mappings live in one immutable-by-convention `Annotations` value.
Writers hold `AnnotationStore._lock`, build a modified copy, publish it by
swapping the reference and then rewrite the whole file. Readers grab the
current reference without locking, so they always see a complete
before-or-after view and only ever get copies back.
"""
from __future__ import annotations
import json
import logging
import threading
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from .config import WELL_KNOWN_SERVICES
from .errors import PersistenceCorruptionWarning, PersistenceError
from .models import NO_PROCESS, TABLE_KINDS, split_service_id

logger = logging.getLogger(__name__)


def normalize_url_path(path: Optional[str]) -> str:
    if not path:
        return "/"
    return path if path.startswith("/") else "/" + path


@dataclass
class Annotations:
    service_names: Dict[str, str] = field(default_factory=dict)
    interface_links: Dict[str, bool] = field(default_factory=dict)
    columns: Dict[str, Dict[str, bool]] = field(default_factory=dict)
    url_paths: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> "Annotations":
        return Annotations(
            service_names=dict(self.service_names),
            interface_links=dict(self.interface_links),
            columns={t: dict(cols) for t, cols in self.columns.items()},
            url_paths=dict(self.url_paths),
        )

    def to_payload(self) -> dict:
        return {
            "service_names": [
                {"service_id": sid, "name": name}
                for sid, name in sorted(self.service_names.items())
            ],
            "interface_configs": [
                {"name": name, "show_links": show}
                for name, show in sorted(self.interface_links.items())
            ],
            "column_configs": [
                {"table": table, "column": col, "visible": vis}
                for table, cols in sorted(self.columns.items())
                for col, vis in sorted(cols.items())
            ],
            "url_paths": [
                {"service_id": sid, "path": path}
                for sid, path in sorted(self.url_paths.items())
            ],
        }

    @classmethod
    def from_payload(cls, data: Mapping) -> "Annotations":
        """Build from the on-disk schema, dropping entries with the wrong shape."""
        ann = cls()
        for item in _items(data, "service_names"):
            sid, name = item.get("service_id"), item.get("name")
            if is_text(sid) and is_text(name):
                ann.service_names[sid] = name
        for item in _items(data, "interface_configs"):
            name, show = item.get("name"), item.get("show_links")
            if is_text(name) and isinstance(show, bool):
                ann.interface_links[name] = show
        for item in _items(data, "column_configs"):
            table, col = item.get("table"), item.get("column")
            vis = item.get("visible", True)
            if is_text(table) and is_text(col) and table and col:
                ann.columns.setdefault(table, {})[col] = vis if isinstance(vis, bool) else True
        for item in _items(data, "url_paths"):
            sid, path = item.get("service_id"), item.get("path")
            if is_text(sid) and is_text(path):
                ann.url_paths[sid] = path
        return ann


def is_text(v) -> bool:
    """A str that survives the UTF-8 file round trip (no lone surrogates)."""
    if not isinstance(v, str):
        return False
    try:
        v.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def check_text(**values) -> None:
    for what, v in values.items():
        if not is_text(v):
            raise ValueError(f"{what} must be a UTF-8 encodable string")


def _items(data: Mapping, key: str) -> list:
    v = data.get(key)
    if not isinstance(v, list):
        return []
    return [x for x in v if isinstance(x, dict)]


class AnnotationStore:
    """
    Process-wide annotation store backed by a single JSON file.

    The store assumes it is the only writer of `path`.
    """

    def __init__(self, path: Path, well_known: Optional[Mapping[str, str]] = None):
        self.path = Path(path)
        self.well_known = dict(WELL_KNOWN_SERVICES if well_known is None else well_known)
        self._lock = threading.Lock()
        self._state = Annotations()

    # persistence

    def load(self) -> None:
        with self._lock:
            self._state = self._read()

    def _read(self) -> Annotations:
        if not self.path.exists():
            logger.info("annotation file %s not found, starting empty", self.path)
            return Annotations()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            return self._corrupt(f"cannot read {self.path}: {e}")
        if not isinstance(data, dict):
            return self._corrupt(f"{self.path}: top level is not an object")
        ann = Annotations.from_payload(data)
        logger.info(
            "loaded annotations: %d names, %d interfaces, %d column tables, %d url paths",
            len(ann.service_names), len(ann.interface_links), len(ann.columns), len(ann.url_paths),
        )
        return ann

    def _corrupt(self, msg: str) -> Annotations:
        logger.warning("%s; starting with empty annotations", msg)
        warnings.warn(msg, PersistenceCorruptionWarning, stacklevel=3)
        return Annotations()

    def save(self) -> None:
        with self._lock:
            self._write(self._state)

    def _write(self, ann: Annotations) -> None:
        payload = ann.to_payload()
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
        except (OSError, ValueError) as e:
            logger.error("saving annotations to %s failed: %s", self.path, e)
            raise PersistenceError(f"cannot write {self.path}: {e}") from e
        logger.debug("saved annotations to %s", self.path)

    def _mutate(self, change: Callable[[Annotations], None]) -> None:
        # memory is updated first; a failed write leaves it updated
        with self._lock:
            new = self._state.copy()
            change(new)
            self._state = new
            self._write(new)

    # writes

    def set_service_name(self, sid: str, name: str) -> None:
        check_text(service_id=sid, name=name)

        def change(a: Annotations) -> None:
            a.service_names[sid] = name
        logger.info("service name %s = %s", sid, name)
        self._mutate(change)

    def set_interface_visibility(self, name: str, show_links: bool) -> None:
        check_text(interface=name)

        def change(a: Annotations) -> None:
            a.interface_links[name] = bool(show_links)
        logger.info("interface %s show_links = %s", name, show_links)
        self._mutate(change)

    def set_url_path(self, sid: str, path: Optional[str]) -> str:
        check_text(service_id=sid)
        norm = normalize_url_path(path)
        check_text(path=norm)

        def change(a: Annotations) -> None:
            a.url_paths[sid] = norm
        logger.info("url path %s = %s", sid, norm)
        self._mutate(change)
        return norm

    def update_column_visibility(self, columns: Mapping[str, bool]) -> None:
        """Apply every column flag to all table kinds, then persist once."""
        for col in columns:
            check_text(column=col)
        flags = {col: bool(vis) for col, vis in columns.items()}

        def change(a: Annotations) -> None:
            for table in TABLE_KINDS:
                a.columns.setdefault(table, {}).update(flags)
        logger.info("column visibility %s for %s", flags, ",".join(TABLE_KINDS))
        self._mutate(change)

    def set_column_visibility_for_all_tables(self, column: str, visible: bool) -> None:
        self.update_column_visibility({column: visible})

    # reads

    def service_names(self) -> Dict[str, str]:
        return dict(self._state.service_names)

    def interface_link_visibility(self) -> Dict[str, bool]:
        return dict(self._state.interface_links)

    def column_visibility(self) -> Dict[str, Dict[str, bool]]:
        return {t: dict(cols) for t, cols in self._state.columns.items()}

    def url_paths(self) -> Dict[str, str]:
        return dict(self._state.url_paths)

    def payload(self) -> dict:
        return self._state.to_payload()

    def service_name(self, sid: str) -> str:
        name = self._state.service_names.get(sid)
        if name is not None:
            return name
        _, port, _ = split_service_id(sid)
        return self.well_known.get(port, NO_PROCESS)

    def show_links(self, interface: str) -> bool:
        return self._state.interface_links.get(interface, True)

    def column_visible(self, table: str, column: str) -> bool:
        return self._state.columns.get(table, {}).get(column, True)

    def url_path(self, sid: str) -> str:
        return self._state.url_paths.get(sid, "/")
