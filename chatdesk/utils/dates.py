from datetime import datetime, timezone


def utcnow():
    """UTC actual sin tzinfo; las columnas DateTime guardan UTC naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
