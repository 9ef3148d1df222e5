from typing import Optional


class AppError(Exception):
    """Базовое исключение прикладного уровня."""


class NotFoundError(AppError):
    """Запрошенная сущность не найдена."""


class WalletAlreadyExistsError(AppError):
    """У пользователя уже есть кошелек."""


class ExternalServiceError(AppError):
    """
    Ошибка при обращении к внешнему сервису (кастодиальный провайдер,
    курсы валют). Хранит имя операции, на которой произошел сбой.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class WalletProvisioningError(ExternalServiceError):
    """
    Сбой выпуска кошелька после создания хранилища у провайдера.
    vault_id указывает на хранилище, оставшееся без локальной записи.
    """

    def __init__(
        self, operation: str, detail: str, vault_id: Optional[str] = None
    ):
        self.vault_id = vault_id
        super().__init__(operation, detail)


class InvalidMoneyError(ValueError):
    """Денежное значение не удалось разобрать."""


class InvalidUnitCountError(ValueError):
    """Количество долей должно быть положительным."""
