import logging

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user

from chatdesk.errors import ForbiddenError, ServiceError
from chatdesk.services.auth_service import auth_service
from chatdesk.utils.auth import current_user_id
from chatdesk.utils.response import success, error, service_error
from chatdesk.utils.validation import check_string, check_email

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


# =========================
# HELPERS
# =========================
def _validate_register_input(data: dict) -> list[str]:
    errors: list[str] = []
    check_string(data, "name", "El nombre", errors, min_len=2, max_len=100)
    check_email(data, errors)
    check_string(data, "password", "La contraseña", errors, min_len=6, max_len=100)
    return errors


def _validate_login_input(data: dict) -> list[str]:
    errors: list[str] = []
    check_email(data, errors)
    check_string(data, "password", "La contraseña", errors, min_len=6)
    return errors


def _validate_profile_input(data: dict) -> list[str]:
    errors: list[str] = []
    if "name" in data:
        check_string(data, "name", "El nombre", errors, min_len=2, max_len=100)
    if "avatar" in data and data["avatar"] is not None:
        check_string(data, "avatar", "El avatar", errors, max_len=255, required=False)
    return errors


def _auth_payload(user, token):
    return {"user": user.to_dict(), "token": token}


# =========================
# ROUTES
# =========================
@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}

    validation_errors = _validate_register_input(data)
    if validation_errors:
        return error("Datos de entrada inválidos", 400, message=validation_errors[0])

    try:
        user, token = auth_service.register(data["name"], data["email"], data["password"])
    except ServiceError as e:
        return service_error(e)

    return success(_auth_payload(user, token), "Usuario registrado exitosamente", 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}

    validation_errors = _validate_login_input(data)
    if validation_errors:
        return error("Datos de entrada inválidos", 400, message=validation_errors[0])

    try:
        user, token = auth_service.login(data["email"], data["password"])
    except ServiceError as e:
        return service_error(e)

    return success(_auth_payload(user, token), "Inicio de sesión exitoso")


@auth_bp.route("/demo", methods=["POST"])
def demo():
    """Usuario demo para desarrollo; deshabilitado en producción."""
    if current_app.config.get("ENVIRONMENT") == "production":
        raise ForbiddenError("Funcionalidad no disponible en producción")

    user, token = auth_service.create_demo_user()
    return success(_auth_payload(user, token), "Usuario demo creado/obtenido exitosamente")


@auth_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    try:
        user = auth_service.get_profile(current_user_id())
    except ServiceError as e:
        return service_error(e)

    return success({"user": user.to_dict()}, "Perfil obtenido exitosamente")


@auth_bp.route("/profile", methods=["PUT"])
@jwt_required()
def update_profile():
    data = request.get_json(silent=True) or {}

    validation_errors = _validate_profile_input(data)
    if validation_errors:
        return error("Datos de entrada inválidos", 400, message=validation_errors[0])

    try:
        user = auth_service.update_profile(
            current_user_id(),
            name=data.get("name"),
            avatar=data.get("avatar"),
        )
    except ServiceError as e:
        return service_error(e)

    return success({"user": user.to_dict()}, "Perfil actualizado exitosamente")


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    # el token ya fue validado y el usuario cargado por el user_lookup_loader
    return success({"user": current_user.to_dict()}, "Usuario autenticado")


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    # JWT sin estado: el cliente descarta el token
    logger.info("Logout de usuario %s", current_user_id())
    return success(message="Sesión cerrada exitosamente")
