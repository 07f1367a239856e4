import logging

import requests
from flask import current_app

from chatdesk.errors import CompletionError, ConfigurationError
from chatdesk.extensions import db
from chatdesk.models.conversation import MessageRole
from chatdesk.models.prompt import Prompt

logger = logging.getLogger(__name__)


class CompletionService:
    """
    Cliente del proveedor de chat completions (API compatible con OpenAI).
    Una sola llamada síncrona por turno, sin reintentos.
    """

    def _config(self, key):
        return current_app.config[key]

    def _headers(self):
        api_key = current_app.config.get("COMPLETION_API_KEY")
        if not api_key:
            raise ConfigurationError("API Key del proveedor no configurada")
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def resolve_prompt(self, prompt_id=None):
        """Prompt explícito si viene `prompt_id`, si no el prompt activo."""
        if prompt_id is not None:
            prompt = db.session.get(Prompt, prompt_id)
        else:
            prompt = Prompt.query.filter_by(is_active=True).order_by(Prompt.id.asc()).first()

        if not prompt:
            raise ConfigurationError("No hay prompts configurados")
        return prompt

    def build_messages(self, prompt, history, content):
        messages = [{"role": "system", "content": prompt.content}]
        for m in history:
            messages.append({
                "role": "user" if m.role == MessageRole.USER else "assistant",
                "content": m.content,
            })
        messages.append({"role": "user", "content": content})
        return messages

    def complete(self, messages):
        payload = {
            "model": self._config("COMPLETION_MODEL"),
            "messages": messages,
            "max_tokens": self._config("COMPLETION_MAX_TOKENS"),
            "temperature": self._config("COMPLETION_TEMPERATURE"),
            "frequency_penalty": self._config("COMPLETION_FREQUENCY_PENALTY"),
            "presence_penalty": self._config("COMPLETION_PRESENCE_PENALTY"),
            "stream": False,
        }

        try:
            resp = requests.post(
                self._config("COMPLETION_API_URL"),
                json=payload,
                headers=self._headers(),
                timeout=self._config("COMPLETION_TIMEOUT"),
            )
        except requests.Timeout as e:
            raise CompletionError(f"Timeout del proveedor: {e}") from e
        except requests.RequestException as e:
            raise CompletionError(f"Error de conexión con el proveedor: {e}") from e

        if not resp.ok:
            logger.error("❌ Proveedor respondió %s: %s", resp.status_code, resp.text[:500])
            raise CompletionError(_provider_error_message(resp), status_code=resp.status_code)

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionError("Respuesta del proveedor con formato inválido") from e

        if not isinstance(content, str) or not content.strip():
            raise CompletionError("Respuesta del proveedor vacía")

        return content.strip()

    def validate_configuration(self):
        """Llamada mínima de prueba para verificar API key, URL y modelo."""
        try:
            headers = self._headers()
        except ConfigurationError as e:
            return {"isValid": False, "message": e.message}

        try:
            resp = requests.post(
                self._config("COMPLETION_API_URL"),
                json={
                    "model": self._config("COMPLETION_MODEL"),
                    "messages": [{"role": "user", "content": "test"}],
                    "max_tokens": 5,
                },
                headers=headers,
                timeout=10,
            )
        except requests.RequestException as e:
            return {"isValid": False, "message": f"Error de configuración: {e}"}

        if not resp.ok:
            return {"isValid": False, "message": f"Error de configuración: {_provider_error_message(resp)}"}

        return {"isValid": True, "message": "Configuración válida"}


def _provider_error_message(resp):
    try:
        return resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {resp.status_code}"


completion_service = CompletionService()
