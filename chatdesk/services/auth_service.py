import logging

from flask_jwt_extended import create_access_token

from chatdesk.errors import ConflictError, InvalidCredentialsError, NotFoundError
from chatdesk.extensions import db
from chatdesk.models.user import User

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@versu.ai"
DEMO_PASSWORD = "demo123"
DEMO_NAME = "Usuario Demo"
DEMO_AVATAR = "https://avatar.vercel.sh/demo"


def issue_token(user):
    # identity = id del usuario como string; la expiración sale de JWT_ACCESS_TOKEN_EXPIRES
    return create_access_token(identity=str(user.id))


class AuthService:

    def register(self, name, email, password):
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise ConflictError("El email ya está registrado")

        user = User(name=name.strip(), email=email)
        user.set_password(password)
        try:
            db.session.add(user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return user, issue_token(user)

    def login(self, email, password):
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not user.check_password(password):
            raise InvalidCredentialsError("Email o contraseña incorrectos")

        return user, issue_token(user)

    def get_profile(self, user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("Usuario no encontrado")
        return user

    def update_profile(self, user_id, name=None, avatar=None):
        user = self.get_profile(user_id)
        if name is not None:
            user.name = name.strip()
        if avatar is not None:
            user.avatar = avatar or None
        db.session.commit()
        return user

    def ensure_demo_user(self):
        user = User.query.filter_by(email=DEMO_EMAIL).first()
        if user:
            return user

        user = User(name=DEMO_NAME, email=DEMO_EMAIL, avatar=DEMO_AVATAR)
        user.set_password(DEMO_PASSWORD)
        db.session.add(user)
        db.session.commit()
        logger.info("Usuario demo creado: %s", DEMO_EMAIL)
        return user

    def create_demo_user(self):
        user = self.ensure_demo_user()
        return user, issue_token(user)


auth_service = AuthService()
