# petaboo/core/exceptions.py

class BaseAppException(Exception):
    """Базовый класс для всех кастомных исключений приложения."""
    code = "app_error"

    def __init__(self, message: str = "App exception"):
        super().__init__(message)
        self.message = message

# ==== Авторизация ====

class Unauthorized(BaseAppException):
    """Нет токена, неверная схема или невалидный токен (401)."""
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)

class AuthenticationFailed(Unauthorized):
    """Проверка токена упала: подпись, срок действия, формат (401)."""
    code = "authentication_failed"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)

class Forbidden(BaseAppException):
    """Пользователь известен, но прав (роль/членство/план) недостаточно (403)."""
    code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации."""
    code = "validation_error"

    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class TeamValidationError(ValidationError):
    """Ошибка валидации команды."""
    def __init__(self, message: str = "Team validation error"):
        super().__init__(message)

class TaskValidationError(ValidationError):
    """Ошибка валидации задачи."""
    def __init__(self, message: str = "Task validation error"):
        super().__init__(message)

class InvalidActivityType(ValidationError):
    """Неизвестный тип действия для журнала активности."""
    code = "invalid_activity_type"

    def __init__(self, message: str = "Unknown activity type"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class UserNotFound(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)

class TeamNotFound(NotFoundError):
    def __init__(self, message: str = "Team not found"):
        super().__init__(message)

class TaskNotFound(NotFoundError):
    def __init__(self, message: str = "Task not found"):
        super().__init__(message)

class MemoNotFound(NotFoundError):
    def __init__(self, message: str = "Memo not found"):
        super().__init__(message)

class CommentNotFound(NotFoundError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message)

class NotificationNotFound(NotFoundError):
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message)

class JoinRequestNotFound(NotFoundError):
    def __init__(self, message: str = "Join request not found"):
        super().__init__(message)

# ==== Дубликаты ====

class DuplicateError(BaseAppException):
    """Нарушение уникальности (409)."""
    code = "duplicate"

    def __init__(self, message: str = "Duplicate resource"):
        super().__init__(message)

class DuplicateTeamUrl(DuplicateError):
    def __init__(self, message: str = "Team custom URL already taken"):
        super().__init__(message)

class DuplicateMembership(DuplicateError):
    """Пара (team_id, user_id) уже существует в team_members."""
    def __init__(self, message: str = "User is already a member of this team"):
        super().__init__(message)

# ==== Внешние системы ====

class UpstreamError(BaseAppException):
    """Сбой БД или провайдера идентификации. Детали только в логах."""
    code = "upstream_error"

    def __init__(self, message: str = "Upstream service failure"):
        super().__init__(message)
