from __future__ import annotations
from typing import Optional

import orjson
from flask import Flask, Response, current_app, request

from ..collectors import SocketSource, SsSocketSource, collect_interfaces, collect_services, find_free_ports
from ..collectors.interfaces import AddrProvider
from ..collectors.ports import MAX_COUNT
from ..config import CFG, port_range
from ..errors import (
    CommandExecutionError,
    InsufficientFreePortsError,
    InterfaceEnumerationError,
    PersistenceError,
    PortMonitorError,
)
from ..store import AnnotationStore

ERROR_STATUS = {
    CommandExecutionError: 500,
    InterfaceEnumerationError: 500,
    PersistenceError: 500,
    InsufficientFreePortsError: 409,
}


def dumps(obj) -> str:
    return orjson.dumps(obj).decode()


def json_response(obj, status: int = 200) -> Response:
    return Response(dumps(obj), status=status, mimetype="application/json")


def error_response(msg: str, status: int = 400, kind: str = "bad_request") -> Response:
    return json_response({"error": msg, "kind": kind}, status)


def create_app(cfg: CFG, store: AnnotationStore, source: Optional[SocketSource] = None,
               if_addrs: Optional[AddrProvider] = None) -> Flask:
    app = Flask(__name__)
    source = source or SsSocketSource(timeout=cfg.command_timeout)

    @app.errorhandler(PortMonitorError)
    def on_core_error(e: PortMonitorError):
        current_app.logger.error("%s: %s", type(e).__name__, e)
        return error_response(str(e), ERROR_STATUS.get(type(e), 500), e.kind)

    @app.errorhandler(ValueError)
    def on_bad_value(e: ValueError):
        return error_response(str(e))

    @app.get("/api/services")
    def api_services():
        services = collect_services(source)
        return json_response([s.to_dict() for s in services])

    @app.get("/api/interfaces")
    def api_interfaces():
        kw = {"addrs": if_addrs} if if_addrs else {}
        ifaces = collect_interfaces(
            cfg.exclude_interfaces, cfg.public_ip_url,
            public_label=cfg.public_label, timeout=cfg.public_ip_timeout, **kw,
        )
        return json_response([i.to_dict() for i in ifaces])

    @app.post("/api/save-service-name")
    def api_save_service_name():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return error_response("invalid JSON body")
        if data.get("type") == "interface_config":
            name, show = data.get("interface_name"), data.get("show_links")
            if not isinstance(name, str) or not isinstance(show, bool):
                return error_response("invalid interface config")
            store.set_interface_visibility(name, show)
            return json_response({"ok": True})
        sid, name = data.get("service_id"), data.get("name")
        if not isinstance(sid, str) or not isinstance(name, str):
            return error_response("invalid service name")
        store.set_service_name(sid, name)
        return json_response({"ok": True})

    @app.get("/api/saved-service-names")
    def api_saved_service_names():
        return json_response(store.payload())

    @app.post("/api/save-column-config")
    def api_save_column_config():
        data = request.get_json(silent=True)
        cols = data.get("column_configs") if isinstance(data, dict) else None
        if not isinstance(cols, dict) or not all(
                isinstance(k, str) and isinstance(v, bool) for k, v in cols.items()):
            return error_response("invalid column config")
        store.update_column_visibility(cols)
        return json_response({"ok": True})

    @app.post("/api/save-url-path")
    def api_save_url_path():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("service_id"), str):
            return error_response("invalid url path")
        path = data.get("path") or ""
        if not isinstance(path, str):
            return error_response("invalid url path")
        norm = store.set_url_path(data["service_id"], path)
        return json_response({"ok": True, "path": norm})

    @app.get("/api/generate-ports")
    def api_generate_ports():
        raw = request.args.get("count") or "1"
        try:
            count = int(raw)
        except ValueError:
            count = 0
        if not 1 <= count <= MAX_COUNT:
            return error_response(f"count must be an integer between 1 and {MAX_COUNT}")
        low, high = port_range(request.args.get("range"))
        ports = find_free_ports(source, count, low, high)
        return json_response({"ports": ports})

    return app
