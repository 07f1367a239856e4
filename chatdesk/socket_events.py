import logging

from flask import request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_socketio import ConnectionRefusedError, emit, join_room, leave_room, rooms
from jwt.exceptions import PyJWTError

from chatdesk.extensions import socketio
from chatdesk.models.conversation import Conversation

logger = logging.getLogger(__name__)

# sid -> user_id de cada socket autenticado
connected_users = {}


def room_for(conversation_id):
    return f"conversation_{conversation_id}"


def _conversation_id(data):
    try:
        return int((data or {}).get("conversationId"))
    except (TypeError, ValueError):
        return None


# 1. Conexión: el cliente manda {auth: {token}} con el JWT del API REST
@socketio.on("connect")
def handle_connect(auth=None):
    token = (auth or {}).get("token")
    if not token:
        raise ConnectionRefusedError("Token de autorización requerido")

    try:
        user_id = int(decode_token(token)["sub"])
    except (PyJWTError, JWTExtendedException, KeyError, TypeError, ValueError):
        raise ConnectionRefusedError("Token inválido o expirado")

    connected_users[request.sid] = user_id
    logger.info("⚡ Cliente conectado: %s (usuario %s)", request.sid, user_id)


@socketio.on("disconnect")
def handle_disconnect(*_args):
    connected_users.pop(request.sid, None)
    logger.info("Cliente desconectado: %s", request.sid)


# 2. Entrar a la sala de una conversación propia
@socketio.on("join_conversation")
def handle_join(data):
    conversation_id = _conversation_id(data)
    user_id = connected_users.get(request.sid)

    owned = conversation_id is not None and Conversation.query.filter_by(
        id=conversation_id, user_id=user_id
    ).first()
    if not owned:
        emit("error", {"message": "Conversación no encontrada"})
        return

    join_room(room_for(conversation_id))
    logger.info("➡️ Cliente %s entró a %s", request.sid, room_for(conversation_id))


# 3. Salir de la sala
@socketio.on("leave_conversation")
def handle_leave(data):
    conversation_id = _conversation_id(data)
    if conversation_id is None:
        return
    leave_room(room_for(conversation_id))
    logger.info("⬅️ Cliente %s salió de %s", request.sid, room_for(conversation_id))


# 4. Indicadores de escritura: solo desde un socket que ya entró a la sala,
# broadcast a la sala sin incluir al emisor
def _broadcast_typing(data, is_typing):
    conversation_id = _conversation_id(data)
    if conversation_id is None:
        return
    if room_for(conversation_id) not in rooms():
        emit("error", {"message": "No estás unido a esta conversación"})
        return
    emit(
        "typing_indicator",
        {"conversationId": conversation_id, "isTyping": is_typing},
        to=room_for(conversation_id),
        include_self=False,
    )


@socketio.on("typing_start")
def handle_typing_start(data):
    _broadcast_typing(data, True)


@socketio.on("typing_stop")
def handle_typing_stop(data):
    _broadcast_typing(data, False)
