from flask import jsonify


def response(status_code, success_flag, data=None, message=None, error_text=None):
    """
    Formato estándar de respuesta del API: {success, data?, message?, error?}
    """
    res_structure = {"success": success_flag}
    if data is not None:
        res_structure["data"] = data
    if message is not None:
        res_structure["message"] = message
    if error_text is not None:
        res_structure["error"] = error_text
    return jsonify(res_structure), status_code


def success(data=None, message=None, status_code=200):
    return response(status_code, True, data=data, message=message)


def error(error_text="Error interno del servidor", status_code=500, message=None):
    return response(status_code, False, message=message, error_text=error_text)


def service_error(exc):
    """Convierte un ServiceError en respuesta con el sobre estándar."""
    if exc.titled:
        return error(exc.error, exc.status_code, message=exc.message)
    return error(exc.message, exc.status_code)
