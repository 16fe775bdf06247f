# guardops_api/common/http.py
from flask import jsonify, request

def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status

def json_body() -> dict:
    j = request.get_json(silent=True)
    return j if isinstance(j, dict) else {}

def text_field(j: dict, name: str, strip: bool = True) -> str:
    """String value of ``j[name]`` ('' when missing or null); other JSON types are a 422."""
    v = j.get(name)
    if v is None:
        return ""
    if not isinstance(v, str):
        from guardops_api.common.errors import ValidationFailed
        raise ValidationFailed(f"{name} must be a string")
    return v.strip() if strip else v
