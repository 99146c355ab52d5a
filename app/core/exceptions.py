from __future__ import annotations


class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400, code="VALIDATION_ERROR")


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Nao autorizado"):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")


class ForbiddenError(AppError):
    def __init__(self, message: str = "Acesso negado"):
        super().__init__(message, status_code=403, code="FORBIDDEN")


class NotFoundError(AppError):
    def __init__(self, message: str = "Recurso nao encontrado"):
        super().__init__(message, status_code=404, code="NOT_FOUND")


class QueryTimeoutError(AppError):
    def __init__(self, message: str = "Consulta excedeu o tempo limite. Tente filtros mais especificos."):
        super().__init__(message, status_code=408, code="QUERY_TIMEOUT")


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")


class UpstreamError(AppError):
    def __init__(self, message: str, code: str = "UPSTREAM_ERROR"):
        super().__init__(message, status_code=502, code=code)


class ServiceUnavailableError(AppError):
    def __init__(self, message: str, code: str = "SERVICE_UNAVAILABLE"):
        super().__init__(message, status_code=503, code=code)


class DatabaseUnavailableError(ServiceUnavailableError):
    def __init__(self, message: str = "Banco de dados indisponivel (modo offline)"):
        super().__init__(message, code="DATABASE_OFFLINE")


class EmailDeliveryError(AppError):
    def __init__(self, message: str = "Nenhum provedor de email disponivel"):
        super().__init__(message, status_code=502, code="EMAIL_DELIVERY_FAILED")
