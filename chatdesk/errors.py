class ServiceError(Exception):
    """Base de los errores de dominio que las rutas convierten en respuesta HTTP."""

    status_code = 500
    error = "Error interno del servidor"
    # si es True, `error` es un título fijo y el detalle va en `message`
    titled = False

    def __init__(self, message=None):
        super().__init__(message or self.error)
        self.message = message or self.error


class ValidationError(ServiceError):
    status_code = 400
    error = "Datos de entrada inválidos"
    titled = True


class InvalidCredentialsError(ServiceError):
    status_code = 401
    error = "Credenciales inválidas"
    titled = True


class ForbiddenError(ServiceError):
    status_code = 403
    error = "Acceso denegado"


class NotFoundError(ServiceError):
    status_code = 404
    error = "Recurso no encontrado"


class ConflictError(ServiceError):
    status_code = 409
    error = "Conflicto"
    titled = True


class ConfigurationError(ServiceError):
    status_code = 500
    error = "Error de configuración"


class CompletionError(Exception):
    """Fallo del proveedor de completions. Nunca llega a la capa HTTP."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code
