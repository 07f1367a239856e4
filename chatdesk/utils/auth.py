from flask_jwt_extended import get_jwt_identity

from chatdesk.extensions import db
from chatdesk.models.user import User
from chatdesk.utils.response import error


def current_user_id() -> int:
    """user_id desde la identidad JWT (se emite como str(user.id))."""
    try:
        return int(get_jwt_identity())
    except (TypeError, ValueError):
        return 0


def register_jwt_handlers(jwt):
    """Respuestas 401 con el sobre estándar y carga del usuario del token."""

    @jwt.user_lookup_loader
    def load_user(_jwt_header, jwt_data):
        try:
            return db.session.get(User, int(jwt_data["sub"]))
        except (TypeError, ValueError):
            return None

    @jwt.user_lookup_error_loader
    def user_not_found(_jwt_header, _jwt_data):
        return error("Token inválido o expirado", 401)

    @jwt.unauthorized_loader
    def missing_token(_reason):
        return error("Token de autorización requerido", 401)

    @jwt.invalid_token_loader
    def invalid_token(_reason):
        return error("Formato de token inválido", 401)

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_data):
        return error("Token inválido o expirado", 401)
