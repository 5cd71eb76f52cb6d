class DomainError(Exception):
    """Базовая ошибка доменного слоя"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Комментарий, задача, участник или агрегат не найден"""

    status_code = 404


class InvalidStateError(DomainError):
    """Операция недопустима в текущем состоянии"""

    status_code = 400


class PermissionDeniedError(DomainError):
    """У пользователя нет нужного права"""

    status_code = 403


class ConflictError(DomainError):
    """Нарушение уникальности"""

    status_code = 409


class RevisionConflictError(ConflictError):
    """Документ был изменен другим запросом после чтения"""

    def __init__(self, message: str = "Collaboration was modified by another request"):
        super().__init__(message)


class ShareExpiredError(DomainError):
    status_code = 410


class AuthenticationRequiredError(DomainError):
    status_code = 401
