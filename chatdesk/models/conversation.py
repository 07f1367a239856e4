from chatdesk.utils.dates import utcnow
from chatdesk.extensions import db


class ConversationChannel:
    WEB = 'WEB'
    WHATSAPP = 'WHATSAPP'
    INSTAGRAM = 'INSTAGRAM'

    ALL = (WEB, WHATSAPP, INSTAGRAM)


class ConversationStatus:
    OPEN = 'OPEN'
    CLOSED = 'CLOSED'

    ALL = (OPEN, CLOSED)


class MessageRole:
    USER = 'USER'
    AI = 'AI'


class Conversation(db.Model):
    __tablename__ = 'conversations'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    channel = db.Column(db.String(20), nullable=False, default=ConversationChannel.WEB)
    status = db.Column(db.String(20), nullable=False, default=ConversationStatus.OPEN)

    # 1-5, solo se asigna al calificar (y eso cierra la conversación)
    rating = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    messages = db.relationship(
        'Message',
        backref='conversation',
        lazy='dynamic',
        cascade='all, delete-orphan',
        order_by='Message.created_at',
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "channel": self.channel,
            "status": self.status,
            "rating": self.rating,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __repr__(self):
        return f"<Conversation {self.id} {self.status}>"


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False, index=True)

    content = db.Column(db.Text, nullable=False)
    role = db.Column(db.String(10), nullable=False)  # USER / AI
    prompt_used = db.Column(db.String(100), nullable=True)
    response_time = db.Column(db.Integer, nullable=True)  # ms, solo mensajes AI

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "content": self.content,
            "role": self.role,
            "promptUsed": self.prompt_used,
            "responseTime": self.response_time,
            "createdAt": self.created_at.isoformat(),
        }
