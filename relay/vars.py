import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "session-relay")
HOST = os.environ.get("HOSTNAME", "localhost")
PORT = int(os.environ.get("PORT", "80"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

FORWARD_PATH = os.environ.get("RELAY_FORWARD_PATH", "/api/middleware")
RELAY_TIMEOUT = float(os.getenv("RELAY_TIMEOUT", "30"))
RELAY_MAX_BODY_BYTES = int(os.getenv("RELAY_MAX_BODY_BYTES", "1000000"))
RELAY_DEFAULT_HTML = os.getenv(
    "RELAY_DEFAULT_HTML",
    os.path.join(os.path.dirname(__file__), "static", "default.html"),
)

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")


def _parse_allowed_hosts(raw: str) -> list:
    hosts: list = []
    if not raw:
        return hosts
    for entry in raw.split(","):
        entry = entry.strip().lower()
        if entry and entry not in hosts:
            hosts.append(entry)
    return hosts


RELAY_ALLOWED_HOSTS = _parse_allowed_hosts(
    os.getenv("RELAY_ALLOWED_HOSTS", "ctms.fithou.net.vn")
)
