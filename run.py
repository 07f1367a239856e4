import os

from chatdesk import create_app
from chatdesk.extensions import socketio
from chatdesk.utils.database import wait_for_database

app = create_app()

if __name__ == '__main__':
    wait_for_database(app)
    # socketio.run en lugar de app.run para servir también el canal Socket.IO
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 3001)),
        debug=app.config["ENVIRONMENT"] == "development",
        allow_unsafe_werkzeug=True,
    )
