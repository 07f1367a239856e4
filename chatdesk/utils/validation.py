import re
from datetime import datetime

EMAIL_REGEX = r"^[\w\.\+-]+@[\w\.-]+\.\w+$"

# mayor entero que cabe en una columna INTEGER (64 bits con signo)
MAX_DB_INT = 2 ** 63 - 1


def check_string(data, field, label, errors, min_len=None, max_len=None, required=True):
    """Valida un campo string de `data`. Devuelve el valor limpio o None."""
    value = data.get(field)
    if value is None:
        if required:
            errors.append(f"{label} es requerido")
        return None
    if not isinstance(value, str):
        errors.append(f"{label} debe ser texto")
        return None

    value = value.strip()
    if required and not value:
        errors.append(f"{label} es requerido")
    elif min_len is not None and len(value) < min_len:
        errors.append(f"{label} debe tener al menos {min_len} caracteres")
    elif max_len is not None and len(value) > max_len:
        errors.append(f"{label} no puede exceder {max_len} caracteres")
    return value


def check_email(data, errors):
    email = check_string(data, "email", "El email", errors)
    if email and not re.match(EMAIL_REGEX, email):
        errors.append("El email debe tener un formato válido")
    return email.lower() if email else email


def check_choice(value, choices, label, errors):
    if value is None:
        return None
    if value not in choices:
        errors.append(f"{label} debe ser uno de: {', '.join(choices)}")
        return None
    return value


def check_int(value, label, errors, min_value=None, max_value=None, default=None):
    if value is None or value == "":
        return default
    # bool es subclase de int; no se acepta como número
    if isinstance(value, bool):
        errors.append(f"{label} debe ser un número entero")
        return default
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        errors.append(f"{label} debe ser un número entero")
        return default
    if isinstance(value, float) and value != number:
        errors.append(f"{label} debe ser un número entero")
        return default

    if max_value is None and number > MAX_DB_INT:
        errors.append(f"{label} es demasiado grande")
        return default
    if min_value is not None and number < min_value or max_value is not None and number > max_value:
        if max_value is None:
            errors.append(f"{label} debe ser mayor o igual a {min_value}")
        else:
            errors.append(f"{label} debe estar entre {min_value} y {max_value}")
        return default
    return number


def check_bool(value, label, errors):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    errors.append(f"{label} debe ser booleano")
    return None


def check_date(value, label, errors):
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        errors.append(f"{label} debe ser una fecha ISO válida")
        return None
    # Las columnas guardan UTC sin zona
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed


def like_pattern(text):
    """Patrón `%text%` para ilike con `%`, `_` y `\\` escapados (escape="\\")."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
