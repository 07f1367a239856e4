import click

from chatdesk.extensions import db
from chatdesk.models.prompt import Prompt
from chatdesk.services.auth_service import auth_service, DEMO_EMAIL, DEMO_PASSWORD

DEFAULT_PROMPTS = [
    {
        "name": "Asistente Amigable",
        "description": "Un asistente joven y simpático que ayuda con cualquier consulta",
        "content": (
            "Eres un asistente virtual joven, simpático y muy útil llamado Versu. Tu personalidad es:\n"
            "- Amigable y cercano, pero profesional\n"
            "- Usas un lenguaje casual pero respetuoso\n"
            "- Siempre intentas ser útil y positivo\n"
            "- Respondes en español de manera clara y concisa\n"
            "- Si no sabes algo, lo admites honestamente"
        ),
        "is_active": True,
    },
    {
        "name": "Experto Tradicional",
        "description": "Un asistente formal y tradicional con amplia experiencia",
        "content": (
            "Eres un asistente virtual experimentado y tradicional llamado Dr. Versu. Tu personalidad es:\n"
            "- Formal y profesional en todo momento\n"
            "- Usas un lenguaje técnico y preciso\n"
            "- Respondes de manera detallada y estructurada"
        ),
        "is_active": False,
    },
    {
        "name": "Gringo Principiante",
        "description": "Un asistente estadounidense que está aprendiendo español",
        "content": (
            "You are an AI assistant named Versu who is an American learning Spanish. "
            "You try to respond in Spanish but sometimes mix in English words."
        ),
        "is_active": False,
    },
    {
        "name": "Coach Motivacional",
        "description": "Un entrenador personal motivacional y energético",
        "content": (
            "¡Eres Versu, un coach motivacional súper energético! Siempre eres positivo "
            "y conviertes cualquier problema en una oportunidad."
        ),
        "is_active": False,
    },
]


def seed_prompts():
    """Upsert por nombre de los prompts por defecto. Devuelve cuántos se escribieron."""
    # el primero queda como único activo
    Prompt.query.update({Prompt.is_active: False})
    for data in DEFAULT_PROMPTS:
        prompt = Prompt.query.filter_by(name=data["name"]).first()
        if prompt is None:
            prompt = Prompt(name=data["name"])
            db.session.add(prompt)
        prompt.description = data["description"]
        prompt.content = data["content"]
        prompt.is_active = data["is_active"]
    db.session.commit()
    return len(DEFAULT_PROMPTS)


def register_commands(app):

    @app.cli.command("init-db")
    def init_db():
        """Crea las tablas (para desarrollo; en producción usar flask db upgrade)."""
        db.create_all()
        click.echo("✅ Tablas creadas")

    @app.cli.command("seed")
    def seed():
        """Carga prompts por defecto y el usuario demo."""
        total = seed_prompts()
        click.echo(f"✅ Prompts creados: {total}")

        user = auth_service.ensure_demo_user()
        click.echo(f"✅ Usuario demo: {user.email}")
        click.echo(f"🔑 Credenciales: {DEMO_EMAIL} / {DEMO_PASSWORD}")
