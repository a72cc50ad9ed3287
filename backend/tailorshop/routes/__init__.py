from flask import jsonify, request


def error_response(exc: ValueError):
    """Service errors are 400 with the raw message; missing rows are 404."""
    message = str(exc)
    status = 404 if message.lower().endswith("not found") else 400
    return jsonify({"error": message}), status


def arg_int(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer")


def arg_bool(name: str, default: str = "false") -> bool:
    return request.args.get(name, default).lower() == "true"
