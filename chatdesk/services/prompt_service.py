from sqlalchemy import func, or_

from chatdesk.errors import ConflictError, NotFoundError
from chatdesk.extensions import db
from chatdesk.models.conversation import Message, MessageRole
from chatdesk.models.prompt import Prompt
from chatdesk.utils.pagination import paginate
from chatdesk.utils.validation import like_pattern

NOT_FOUND = "Prompt no encontrado"
NAME_TAKEN = "Ya existe un prompt con ese nombre"


class PromptService:
    """
    CRUD de prompts. La regla de un único prompt activo vive aquí: activar uno
    desactiva los demás dentro del mismo commit.
    """

    def _get_or_404(self, prompt_id):
        prompt = db.session.get(Prompt, prompt_id)
        if not prompt:
            raise NotFoundError(NOT_FOUND)
        return prompt

    def _deactivate_others(self, keep_id=None):
        query = Prompt.query.filter(Prompt.is_active.is_(True))
        if keep_id is not None:
            query = query.filter(Prompt.id != keep_id)
        query.update({Prompt.is_active: False}, synchronize_session="fetch")

    def list_active_prompts(self):
        return Prompt.query.filter_by(is_active=True).order_by(Prompt.name.asc()).all()

    def list_prompts(self, page=1, limit=10, search=None):
        query = Prompt.query
        if search:
            pattern = like_pattern(search)
            query = query.filter(or_(
                Prompt.name.ilike(pattern, escape="\\"),
                Prompt.description.ilike(pattern, escape="\\"),
                Prompt.content.ilike(pattern, escape="\\"),
            ))
        query = query.order_by(Prompt.created_at.desc(), Prompt.id.desc())

        prompts, pagination = paginate(query, page, limit)
        return {"data": [p.to_dict() for p in prompts], "pagination": pagination}

    def get_prompt(self, prompt_id):
        return self._get_or_404(prompt_id)

    def get_prompt_by_name(self, name):
        return Prompt.query.filter_by(name=name).first()

    def create_prompt(self, name, content, description=None, is_active=False):
        if self.get_prompt_by_name(name):
            raise ConflictError(NAME_TAKEN)

        try:
            if is_active:
                self._deactivate_others()
            prompt = Prompt(name=name, description=description, content=content, is_active=bool(is_active))
            db.session.add(prompt)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return prompt

    def update_prompt(self, prompt_id, data):
        prompt = self._get_or_404(prompt_id)

        name = data.get("name")
        if name and name != prompt.name and self.get_prompt_by_name(name):
            raise ConflictError(NAME_TAKEN)

        try:
            if name:
                prompt.name = name
            if "description" in data:
                prompt.description = data["description"]
            if data.get("content"):
                prompt.content = data["content"]
            if "isActive" in data:
                if data["isActive"]:
                    self._deactivate_others(keep_id=prompt.id)
                prompt.is_active = bool(data["isActive"])
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return prompt

    def delete_prompt(self, prompt_id):
        prompt = self._get_or_404(prompt_id)
        db.session.delete(prompt)
        db.session.commit()

    def toggle_prompt(self, prompt_id, is_active):
        prompt = self._get_or_404(prompt_id)

        try:
            if is_active:
                self._deactivate_others(keep_id=prompt.id)
            prompt.is_active = bool(is_active)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return prompt

    def get_usage_stats(self, limit=10):
        count = func.count(Message.id)
        rows = (
            db.session.query(Message.prompt_used, count)
            .filter(Message.role == MessageRole.AI, Message.prompt_used.isnot(None))
            .group_by(Message.prompt_used)
            .order_by(count.desc())
            .limit(limit)
            .all()
        )
        return [{"promptName": name or "unknown", "usageCount": total} for name, total in rows]


prompt_service = PromptService()
