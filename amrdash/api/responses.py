"""
Response envelopes

Success: {success: true, data, dataSource, timestamp, ...}
Failure: SurveillanceError.to_dict() plus timestamp
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def envelope(data: Any, data_source: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """
    Wrap a payload in the success envelope

    Args:
        data: payload; objects with to_dict() (and lists of them) are converted
        data_source: table the payload was read from
        **extra: additional top-level keys, e.g. totalRecords

    Returns:
        JSON-ready dict
    """
    body: Dict[str, Any] = {"success": True, "data": _plain(data)}
    if data_source:
        body["dataSource"] = data_source
    body.update({k: _plain(v) for k, v in extra.items()})
    body["timestamp"] = utc_timestamp()
    return body
