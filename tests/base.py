import unittest
from unittest import mock

from config import Config
from chatdesk import create_app
from chatdesk.extensions import db
from chatdesk.models.conversation import Conversation, Message
from chatdesk.models.prompt import Prompt


class TestConfig(Config):
    TESTING = True
    ENVIRONMENT = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-long-enough-for-hs256"
    BCRYPT_LOG_ROUNDS = 4
    COMPLETION_API_KEY = "test-key"
    COMPLETION_API_URL = "https://completions.test/v1/chat/completions"
    COMPLETION_MODEL = "test-model"
    LOG_LEVEL = "WARNING"


def provider_reply(text, status_code=200):
    """Respuesta falsa del proveedor con el formato de chat completions."""
    resp = mock.Mock()
    resp.ok = 200 <= status_code < 300
    resp.status_code = status_code
    resp.text = ""
    resp.json.return_value = {"choices": [{"message": {"role": "assistant", "content": text}}]}
    return resp


def provider_error(status_code, message="boom"):
    resp = mock.Mock()
    resp.ok = False
    resp.status_code = status_code
    resp.text = message
    resp.json.return_value = {"error": {"message": message}}
    return resp


class ChatdeskTestCase(unittest.TestCase):

    def setUp(self):
        self.app = create_app(TestConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    # --- helpers ---
    def register(self, email="ana@example.com", name="Ana", password="secret123"):
        resp = self.client.post("/api/auth/register", json={
            "name": name, "email": email, "password": password,
        })
        self.assertEqual(resp.status_code, 201, resp.get_json())
        data = resp.get_json()["data"]
        return data["user"], data["token"]

    def auth(self, token):
        return {"Authorization": f"Bearer {token}"}

    def make_prompt(self, name="Asistente", content="Eres un asistente útil y amable.", is_active=True):
        prompt = Prompt(name=name, content=content, is_active=is_active)
        db.session.add(prompt)
        db.session.commit()
        return prompt

    def make_conversation(self, user_id, **kwargs):
        conversation = Conversation(user_id=user_id, **kwargs)
        db.session.add(conversation)
        db.session.commit()
        return conversation

    def add_message(self, conversation, content, role, **kwargs):
        message = Message(conversation_id=conversation.id, content=content, role=role, **kwargs)
        db.session.add(message)
        db.session.commit()
        return message
