import logging

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from chatdesk.errors import ServiceError
from chatdesk.models.conversation import ConversationChannel, ConversationStatus
from chatdesk.services.conversation_service import conversation_service, SORTABLE_FIELDS
from chatdesk.utils.auth import current_user_id
from chatdesk.utils.pagination import MAX_PAGE
from chatdesk.utils.response import success, error, service_error
from chatdesk.utils.validation import check_choice, check_date, check_int, check_string

logger = logging.getLogger(__name__)

conversation_bp = Blueprint("conversations", __name__, url_prefix="/api/conversations")

MAX_MESSAGE_LENGTH = 2000


def _parse_filters(args, with_search=False):
    """Filtros de listado desde el query string. Devuelve (filters, errors)."""
    errors = []
    filters = {
        "page": check_int(args.get("page"), "page", errors, min_value=1, max_value=MAX_PAGE, default=1),
        "limit": check_int(args.get("limit"), "limit", errors, min_value=1, max_value=100, default=10),
        "channel": check_choice(args.get("channel") or None, ConversationChannel.ALL, "channel", errors),
        "status": check_choice(args.get("status") or None, ConversationStatus.ALL, "status", errors),
        "min_rating": check_int(args.get("minRating"), "minRating", errors, min_value=1, max_value=5),
        "start_date": check_date(args.get("startDate"), "startDate", errors),
        "end_date": check_date(args.get("endDate"), "endDate", errors),
        "sort_by": check_choice(args.get("sortBy") or "updatedAt", tuple(SORTABLE_FIELDS), "sortBy", errors),
        "sort_order": check_choice(args.get("sortOrder") or "desc", ("asc", "desc"), "sortOrder", errors),
    }
    if with_search:
        filters["search"] = (args.get("search") or "").strip() or None
    return filters, errors


# --- MÉTRICAS (antes de las rutas con <id>) ---
@conversation_bp.route("/metrics", methods=["GET"])
@jwt_required()
def get_metrics():
    metrics = conversation_service.get_dashboard_metrics(current_user_id())
    return success({"metrics": metrics}, "Métricas obtenidas exitosamente")


@conversation_bp.route("/metrics/global", methods=["GET"])
@jwt_required()
def get_global_metrics():
    # TODO: restringir a administradores cuando exista un rol de admin en User
    metrics = conversation_service.get_dashboard_metrics()
    return success({"metrics": metrics}, "Métricas globales obtenidas exitosamente")


@conversation_bp.route("/analytics", methods=["GET"])
@jwt_required()
def get_analytics():
    errors = []
    start_date = check_date(request.args.get("startDate"), "startDate", errors)
    end_date = check_date(request.args.get("endDate"), "endDate", errors)
    if errors:
        return error("Parámetros de consulta inválidos", 400, message=errors[0])

    analytics = conversation_service.get_analytics(current_user_id(), start_date, end_date)
    return success({"analytics": analytics}, "Analytics obtenidos exitosamente")


@conversation_bp.route("/search", methods=["GET"])
@jwt_required()
def search_conversations():
    filters, errors = _parse_filters(request.args, with_search=True)
    if not filters["search"]:
        errors.append("search es requerido")
    if errors:
        return error("Parámetros de consulta inválidos", 400, message=errors[0])

    result = conversation_service.list_conversations(current_user_id(), **filters)
    return success(result, "Conversaciones obtenidas exitosamente")


# --- CRUD ---
@conversation_bp.route("", methods=["POST"])
@jwt_required()
def create_conversation():
    data = request.get_json(silent=True) or {}

    errors = []
    channel = check_choice(data.get("channel"), ConversationChannel.ALL, "channel", errors)
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    conversation = conversation_service.create_conversation(current_user_id(), channel)
    return success({"conversation": conversation.to_dict()}, "Conversación creada exitosamente", 201)


@conversation_bp.route("", methods=["GET"])
@jwt_required()
def list_conversations():
    filters, errors = _parse_filters(request.args)
    if errors:
        return error("Parámetros de consulta inválidos", 400, message=errors[0])

    result = conversation_service.list_conversations(current_user_id(), **filters)
    return success(result, "Conversaciones obtenidas exitosamente")


@conversation_bp.route("/<int:conversation_id>", methods=["GET"])
@jwt_required()
def get_conversation(conversation_id):
    try:
        conversation = conversation_service.get_conversation(conversation_id, current_user_id())
    except ServiceError as e:
        return service_error(e)

    return success({"conversation": conversation}, "Conversación obtenida exitosamente")


@conversation_bp.route("/<int:conversation_id>/messages", methods=["POST"])
@jwt_required()
def send_message(conversation_id):
    """
    Body:
    {
      "content": "hola",
      "promptId": 2 (opcional)
    }
    """
    data = request.get_json(silent=True) or {}

    errors = []
    content = check_string(data, "content", "El contenido del mensaje", errors, min_len=1, max_len=MAX_MESSAGE_LENGTH)
    prompt_id = check_int(data.get("promptId"), "promptId", errors, min_value=1)
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    try:
        user_message, ai_message = conversation_service.send_message(
            conversation_id, content, current_user_id(), prompt_id
        )
    except ServiceError as e:
        return service_error(e)

    return success(
        {"userMessage": user_message.to_dict(), "aiMessage": ai_message.to_dict()},
        "Mensaje enviado exitosamente",
        201,
    )


@conversation_bp.route("/<int:conversation_id>/rate", methods=["POST"])
@jwt_required()
def rate_conversation(conversation_id):
    data = request.get_json(silent=True) or {}

    errors = []
    rating = check_int(data.get("rating"), "La calificación", errors, min_value=1, max_value=5)
    if rating is None and not errors:
        errors.append("La calificación es requerida")
    if errors:
        return error("Datos de entrada inválidos", 400, message=errors[0])

    try:
        conversation = conversation_service.rate_conversation(conversation_id, rating, current_user_id())
    except ServiceError as e:
        return service_error(e)

    return success({"conversation": conversation.to_dict()}, "Conversación calificada exitosamente")


@conversation_bp.route("/<int:conversation_id>/close", methods=["POST"])
@jwt_required()
def close_conversation(conversation_id):
    try:
        conversation = conversation_service.close_conversation(conversation_id, current_user_id())
    except ServiceError as e:
        return service_error(e)

    return success({"conversation": conversation.to_dict()}, "Conversación cerrada exitosamente")
