import logging
import sys
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from chatdesk.extensions import db

logger = logging.getLogger(__name__)


def wait_for_database(app, retries=None, delay=None):
    """
    Espera a que la base de datos acepte conexiones (SELECT 1).
    Tras el último intento fallido termina el proceso con código 1.
    """
    retries = retries or app.config["DB_CONNECT_RETRIES"]
    delay = app.config["DB_CONNECT_DELAY"] if delay is None else delay

    with app.app_context():
        for attempt in range(1, retries + 1):
            try:
                with db.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("✅ Base de datos conectada correctamente")
                return
            except OperationalError as e:
                logger.warning("⏳ Intento %s/%s - esperando a la base de datos...", attempt, retries)
                if attempt == retries:
                    logger.error("❌ No se pudo conectar a la base de datos: %s", e)
                    sys.exit(1)
                time.sleep(delay)
