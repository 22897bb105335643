from typing import Any, Dict, List

from dashboard_core.data import FIELD_NAMES


def make_doc(**values: Any) -> Dict[str, Any]:
    """Build a backend document; ``None`` values are left out of ``fields``."""
    return {"fields": {FIELD_NAMES[k]: [v] for k, v in values.items() if v is not None}}


SCENARIO_ROWS: List[Dict[str, Any]] = [
    {
        "timestamp": "2024-03-04T10:15:00Z",
        "status_code": 200,
        "response_time": 10,
        "request_path": "/api/v1/users",
        "user_id": "u1",
        "country": "FI",
        "client_ip": "10.0.0.1",
    },
    {
        "timestamp": "2024-03-04T10:45:00Z",
        "status_code": 200,
        "response_time": 60,
        "request_path": "/api/v1/orders",
        "user_id": "u2",
        "country": "SE",
        "client_ip": "10.0.0.2",
    },
    {
        "timestamp": "2024-03-04T11:05:00Z",
        "status_code": 404,
        "response_time": 30,
        "request_path": "/static/app.js",
        "user_id": "u1",
        "country": "FI",
        "client_ip": "10.0.0.1",
    },
    {
        "timestamp": "2024-03-05T09:00:00Z",
        "status_code": 500,
        "response_time": 200,
        "request_path": "/api/v2/items",
        "user_id": None,
        "country": None,
        "client_ip": "10.0.0.3",
    },
    {
        "timestamp": "2024-03-12T08:30:00Z",
        "status_code": 200,
        "response_time": 40,
        "request_path": "/admin/login",
        "user_id": "u3",
        "country": "NO",
        "client_ip": "10.0.0.4",
    },
]
