class AppException(Exception):
    """
    Базовый класс для всех исключений приложения.
    """
    pass


class ValidationError(AppException):
    """
    Ошибка валидации входных данных (координаты, BSSID, сигнал...).
    Возникает до любого обращения к хранилищу.
    """

    def __init__(self, message: str, field: str | None = None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value


class ParseError(AppException):
    """
    Ошибка разбора входного файла или его строки.
    """

    def __init__(self, message: str, format_name: str, line: int | None = None):
        super().__init__(message)
        self.format_name = format_name
        self.line = line

    def __str__(self) -> str:
        base = super().__str__()
        if self.line is not None:
            return f"{self.format_name}: {base} (line {self.line})"
        return f"{self.format_name}: {base}"


class FileImportError(AppException):
    """
    Ошибка на уровне оркестрации импорта.
    Может нести частичный ImportResult, накопленный до сбоя.
    """

    def __init__(self, message: str, partial_result=None):
        super().__init__(message)
        self.partial_result = partial_result


class StorageError(AppException):
    """
    Сбой хранилища (SQLAlchemy / SQLite). Исходная ошибка доступна в cause.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
