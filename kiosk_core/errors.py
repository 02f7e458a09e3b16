"""
Исключения ядра kiosk_core
"""

from typing import Optional


class KioskCoreError(Exception):
    """Базовое исключение для всех модулей kiosk_core"""
    pass


class ValidationError(KioskCoreError):
    """Некорректный запрос: неизвестный id, пустой выбор, неверный режим"""
    pass


class SettingNotFoundError(ValidationError):
    """Настройка отсутствует в каталоге"""

    def __init__(self, setting_id: str):
        super().__init__(f"Setting {setting_id} not found")
        self.setting_id = setting_id


class ElevationDeclinedError(KioskCoreError):
    """Пользователь отказал в правах администратора"""

    def __init__(self, message: str = "Administrator access declined", reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class ExecutionFailedError(KioskCoreError):
    """Команда завершилась с ошибкой"""

    def __init__(self, message: str, stderr: str = "", exit_code: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code


class ExecutableNotFoundError(KioskCoreError):
    """Не найден исполняемый файл внутри .app бандла"""
    pass


class MetadataUnreadableError(KioskCoreError):
    """Не удалось прочитать Info.plist бандла"""
    pass


class DescriptorDecodeError(KioskCoreError):
    """Plist документ не соответствует формату LaunchAgent дескриптора"""
    pass
