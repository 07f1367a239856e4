from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from chatdesk.errors import ServiceError
from chatdesk.services.completion_service import completion_service
from chatdesk.services.prompt_service import prompt_service
from chatdesk.utils.pagination import MAX_PAGE
from chatdesk.utils.response import success, error, service_error
from chatdesk.utils.validation import check_bool, check_int, check_string

prompt_bp = Blueprint("prompts", __name__, url_prefix="/api/prompts")


def _validate_prompt_input(data: dict, partial=False) -> tuple[dict, list[str]]:
    """Valida body de creación (partial=False) o actualización (partial=True)."""
    errors: list[str] = []
    clean = {}

    if not partial or "name" in data:
        clean["name"] = check_string(data, "name", "El nombre", errors, min_len=2, max_len=100)
    if not partial or "content" in data:
        clean["content"] = check_string(data, "content", "El contenido", errors, min_len=10, max_len=4000)
    if "description" in data:
        clean["description"] = check_string(
            data, "description", "La descripción", errors, max_len=500, required=False
        ) if data["description"] is not None else None
    if "isActive" in data:
        clean["isActive"] = check_bool(data["isActive"], "isActive", errors)
    elif not partial:
        clean["isActive"] = False

    return clean, errors


def _parse_pagination(args):
    errors = []
    page = check_int(args.get("page"), "page", errors, min_value=1, max_value=MAX_PAGE, default=1)
    limit = check_int(args.get("limit"), "limit", errors, min_value=1, max_value=100, default=10)
    return page, limit, errors


@prompt_bp.route("/active", methods=["GET"])
@jwt_required()
def get_active_prompts():
    prompts = prompt_service.list_active_prompts()
    return success({"prompts": [p.to_dict() for p in prompts]}, "Prompts activos obtenidos exitosamente")


@prompt_bp.route("/stats", methods=["GET"])
@jwt_required()
def get_prompt_stats():
    stats = prompt_service.get_usage_stats()
    return success({"stats": stats}, "Estadísticas obtenidas exitosamente")


@prompt_bp.route("/search", methods=["GET"])
@jwt_required()
def search_prompts():
    page, limit, errors = _parse_pagination(request.args)
    search = (request.args.get("search") or "").strip()
    if not search:
        errors.append("search es requerido")
    if errors:
        return error("Parámetros de consulta inválidos", 400, message=errors[0])

    result = prompt_service.list_prompts(page, limit, search=search)
    return success(result, "Prompts obtenidos exitosamente")


@prompt_bp.route("/config/validate", methods=["GET"])
@jwt_required()
def validate_provider_config():
    result = completion_service.validate_configuration()
    return success({"config": result}, result["message"])


@prompt_bp.route("", methods=["GET"])
@jwt_required()
def list_prompts():
    page, limit, errors = _parse_pagination(request.args)
    if errors:
        return error("Parámetros de consulta inválidos", 400, message=errors[0])

    result = prompt_service.list_prompts(page, limit)
    return success(result, "Prompts obtenidos exitosamente")


@prompt_bp.route("", methods=["POST"])
@jwt_required()
def create_prompt():
    data = request.get_json(silent=True) or {}

    clean, errors = _validate_prompt_input(data)
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    try:
        prompt = prompt_service.create_prompt(
            name=clean["name"],
            content=clean["content"],
            description=clean.get("description"),
            is_active=clean["isActive"],
        )
    except ServiceError as e:
        return service_error(e)

    return success({"prompt": prompt.to_dict()}, "Prompt creado exitosamente", 201)


@prompt_bp.route("/<int:prompt_id>", methods=["GET"])
@jwt_required()
def get_prompt(prompt_id):
    try:
        prompt = prompt_service.get_prompt(prompt_id)
    except ServiceError as e:
        return service_error(e)

    return success({"prompt": prompt.to_dict()}, "Prompt obtenido exitosamente")


@prompt_bp.route("/<int:prompt_id>", methods=["PUT"])
@jwt_required()
def update_prompt(prompt_id):
    data = request.get_json(silent=True) or {}

    clean, errors = _validate_prompt_input(data, partial=True)
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    try:
        prompt = prompt_service.update_prompt(prompt_id, clean)
    except ServiceError as e:
        return service_error(e)

    return success({"prompt": prompt.to_dict()}, "Prompt actualizado exitosamente")


@prompt_bp.route("/<int:prompt_id>", methods=["DELETE"])
@jwt_required()
def delete_prompt(prompt_id):
    try:
        prompt_service.delete_prompt(prompt_id)
    except ServiceError as e:
        return service_error(e)

    return success(message="Prompt eliminado exitosamente")


@prompt_bp.route("/<int:prompt_id>/toggle", methods=["PATCH"])
@jwt_required()
def toggle_prompt(prompt_id):
    data = request.get_json(silent=True) or {}

    errors = []
    if "isActive" not in data:
        errors.append("isActive es requerido")
    else:
        is_active = check_bool(data["isActive"], "isActive", errors)
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    try:
        prompt = prompt_service.toggle_prompt(prompt_id, is_active)
    except ServiceError as e:
        return service_error(e)

    state = "activado" if is_active else "desactivado"
    return success({"prompt": prompt.to_dict()}, f"Prompt {state} exitosamente")
