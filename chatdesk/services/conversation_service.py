import logging
import time
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from chatdesk.errors import CompletionError, ConfigurationError, NotFoundError
from chatdesk.extensions import db
from chatdesk.models.conversation import (
    Conversation,
    ConversationChannel,
    ConversationStatus,
    Message,
    MessageRole,
)
from chatdesk.services.completion_service import completion_service
from chatdesk.utils.dates import utcnow
from chatdesk.utils.pagination import paginate
from chatdesk.utils.validation import like_pattern

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "Lo siento, estoy experimentando dificultades técnicas. "
    "Por favor intenta de nuevo más tarde."
)
FALLBACK_PROMPT = "error-fallback"
NOT_FOUND = "Conversación no encontrada"

SORTABLE_FIELDS = {
    "createdAt": Conversation.created_at,
    "updatedAt": Conversation.updated_at,
    "rating": Conversation.rating,
}


def _in_range(query, start_date=None, end_date=None):
    if start_date:
        query = query.filter(Conversation.created_at >= start_date)
    if end_date:
        query = query.filter(Conversation.created_at <= end_date)
    return query


def _percentage(count, total):
    return round(count / total * 100, 2) if total else 0


class ConversationService:

    def _get_owned(self, conversation_id, user_id):
        conversation = Conversation.query.filter_by(id=conversation_id, user_id=user_id).first()
        if not conversation:
            raise NotFoundError(NOT_FOUND)
        return conversation

    def create_conversation(self, user_id, channel=None):
        conversation = Conversation(
            user_id=user_id,
            channel=channel or ConversationChannel.WEB,
            status=ConversationStatus.OPEN,
        )
        db.session.add(conversation)
        db.session.commit()
        return conversation

    def list_conversations(self, user_id, page=1, limit=10, channel=None, status=None,
                           min_rating=None, start_date=None, end_date=None, search=None,
                           sort_by="updatedAt", sort_order="desc"):
        query = Conversation.query.filter(Conversation.user_id == user_id)

        if channel:
            query = query.filter(Conversation.channel == channel)
        if status:
            query = query.filter(Conversation.status == status)
        if min_rating:
            query = query.filter(Conversation.rating >= min_rating)
        query = _in_range(query, start_date, end_date)

        if search:
            matching = db.select(Message.conversation_id).where(
                Message.content.ilike(like_pattern(search), escape="\\")
            )
            query = query.filter(Conversation.id.in_(matching))

        column = SORTABLE_FIELDS.get(sort_by, Conversation.updated_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = query.order_by(ordering, Conversation.id.desc())

        conversations, pagination = paginate(query, page, limit)

        data = []
        for c in conversations:
            last = c.messages.order_by(None).order_by(Message.created_at.desc(), Message.id.desc()).first()
            item = c.to_dict()
            item["messageCount"] = c.messages.count()
            item["lastMessage"] = last.content if last else None
            data.append(item)

        return {"data": data, "pagination": pagination}

    def get_conversation(self, conversation_id, user_id):
        conversation = self._get_owned(conversation_id, user_id)
        messages = conversation.messages.order_by(None).order_by(Message.created_at.asc(), Message.id.asc()).all()

        result = conversation.to_dict()
        result["messages"] = [m.to_dict() for m in messages]
        result["user"] = conversation.user.to_dict()
        return result

    def _recent_history(self, conversation_id, exclude_id):
        limit = current_app.config.get("HISTORY_LIMIT", 10)
        recent = (
            Message.query
            .filter(Message.conversation_id == conversation_id, Message.id != exclude_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(recent))

    def send_message(self, conversation_id, content, user_id, prompt_id=None):
        """
        Un turno completo: mensaje del usuario, respuesta del proveedor y
        actualización de la conversación. Devuelve (user_message, ai_message).

        Si el proveedor falla (timeout, HTTP no-2xx, payload inválido) o no hay
        prompt configurado, se guarda una respuesta de disculpa fija y el turno
        termina igual con éxito para el cliente.
        """
        conversation = self._get_owned(conversation_id, user_id)

        user_message = Message(
            conversation_id=conversation.id,
            content=content,
            role=MessageRole.USER,
        )
        db.session.add(user_message)
        db.session.commit()

        started = time.monotonic()
        try:
            prompt = completion_service.resolve_prompt(prompt_id)
            history = self._recent_history(conversation.id, exclude_id=user_message.id)
            messages = completion_service.build_messages(prompt, history, content)
            reply = completion_service.complete(messages)

            ai_message = Message(
                conversation_id=conversation.id,
                content=reply,
                role=MessageRole.AI,
                prompt_used=prompt.name,
                response_time=int((time.monotonic() - started) * 1000),
            )
        except (CompletionError, ConfigurationError) as e:
            logger.error("Error generando respuesta de IA (conversación %s): %s", conversation.id, e)
            ai_message = Message(
                conversation_id=conversation.id,
                content=FALLBACK_REPLY,
                role=MessageRole.AI,
                prompt_used=FALLBACK_PROMPT,
                response_time=0,
            )

        db.session.add(ai_message)
        conversation.updated_at = utcnow()
        db.session.commit()

        return user_message, ai_message

    def rate_conversation(self, conversation_id, rating, user_id):
        conversation = self._get_owned(conversation_id, user_id)

        # Calificar cierra la conversación
        conversation.rating = rating
        conversation.status = ConversationStatus.CLOSED
        db.session.commit()
        return conversation

    def close_conversation(self, conversation_id, user_id):
        conversation = self._get_owned(conversation_id, user_id)

        if conversation.status == ConversationStatus.CLOSED:
            return conversation

        conversation.status = ConversationStatus.CLOSED
        db.session.commit()
        return conversation

    def get_dashboard_metrics(self, user_id=None):
        base = Conversation.query
        if user_id is not None:
            base = base.filter(Conversation.user_id == user_id)

        now = utcnow()
        today_start = datetime(now.year, now.month, now.day)
        week_start = now - timedelta(days=7)
        month_start = datetime(now.year, now.month, 1)

        total_today = base.filter(Conversation.created_at >= today_start).count()
        total_week = base.filter(Conversation.created_at >= week_start).count()
        total_month = base.filter(Conversation.created_at >= month_start).count()

        rated = base.filter(Conversation.rating.isnot(None)).count()
        satisfactory = base.filter(Conversation.rating >= 4).count()
        satisfaction_rate = _percentage(satisfactory, rated)

        avg_query = (
            db.session.query(func.avg(Message.response_time))
            .join(Conversation, Message.conversation_id == Conversation.id)
            .filter(Message.role == MessageRole.AI, Message.response_time.isnot(None))
        )
        if user_id is not None:
            avg_query = avg_query.filter(Conversation.user_id == user_id)
        avg_response_time = avg_query.scalar() or 0

        trend = []
        for i in range(6, -1, -1):
            day_start = today_start - timedelta(days=i)
            day_end = day_start + timedelta(days=1)
            count = base.filter(
                Conversation.created_at >= day_start,
                Conversation.created_at < day_end,
            ).count()
            trend.append({"date": day_start.date().isoformat(), "count": count})

        return {
            "totalConversations": {
                "today": total_today,
                "week": total_week,
                "month": total_month,
            },
            "satisfactionRate": satisfaction_rate,
            "averageResponseTime": int(round(float(avg_response_time))),
            "conversationTrend": trend,
        }

    def get_analytics(self, user_id, start_date=None, end_date=None, worst_limit=5):
        base = _in_range(Conversation.query.filter(Conversation.user_id == user_id), start_date, end_date)

        rating_rows = dict(
            base.with_entities(Conversation.rating, func.count(Conversation.id))
            .filter(Conversation.rating.isnot(None))
            .group_by(Conversation.rating)
            .all()
        )
        total_rated = sum(rating_rows.values())
        rating_distribution = [
            {
                "rating": r,
                "count": rating_rows.get(r, 0),
                "percentage": _percentage(rating_rows.get(r, 0), total_rated),
            }
            for r in range(1, 6)
        ]

        channel_rows = dict(
            base.with_entities(Conversation.channel, func.count(Conversation.id))
            .group_by(Conversation.channel)
            .all()
        )
        total = sum(channel_rows.values())
        channel_distribution = [
            {
                "channel": ch,
                "count": channel_rows.get(ch, 0),
                "percentage": _percentage(channel_rows.get(ch, 0), total),
            }
            for ch in ConversationChannel.ALL
        ]

        prompt_messages = (
            _in_range(
                db.session.query(Message.prompt_used, Conversation.id, Conversation.rating)
                .join(Conversation, Message.conversation_id == Conversation.id)
                .filter(Conversation.user_id == user_id),
                start_date,
                end_date,
            )
            .filter(
                Message.role == MessageRole.AI,
                Message.prompt_used.isnot(None),
                Message.prompt_used != FALLBACK_PROMPT,
            )
            .all()
        )

        usage = {}
        ratings = {}
        for prompt_name, conv_id, rating in prompt_messages:
            usage[prompt_name] = usage.get(prompt_name, 0) + 1
            if rating is not None:
                ratings.setdefault(prompt_name, {})[conv_id] = rating

        worst = []
        for prompt_name, by_conversation in ratings.items():
            values = list(by_conversation.values())
            worst.append({
                "prompt": prompt_name,
                "averageRating": round(sum(values) / len(values), 2),
                "usageCount": usage[prompt_name],
                "ratedConversations": len(values),
            })
        worst.sort(key=lambda p: (p["averageRating"], -p["ratedConversations"]))

        return {
            "ratingDistribution": rating_distribution,
            "channelDistribution": channel_distribution,
            "topWorstPrompts": worst[:worst_limit],
        }


conversation_service = ConversationService()
