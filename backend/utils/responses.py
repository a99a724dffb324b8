from flask import jsonify


def success(data=None, status_code=200, **extra):
    """Standard ``{success: true, data, ...}`` envelope; ``extra`` carries count/message/pagination."""
    body = {"success": True}
    body.update(extra)
    if data is not None:
        body["data"] = data
    return jsonify(body), status_code


def success_list(items, status_code=200, **extra):
    return success(items, status_code, count=len(items), **extra)
