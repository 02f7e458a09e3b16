"""
kiosk_core - ядро подготовки macOS-инсталляций (kiosk provisioning)

Модули:
- execution_gateway: выполнение shell-команд
- elevation: сессии прав администратора
- system_settings: каталог системных настроек и их сверка
- script_generator: генерация идемпотентных apply/restore скриптов
- launch_agents: управление LaunchAgent дескрипторами
- process_status: статус процессов launchd
"""

__version__ = "1.0.0"
__author__ = "Up4evr Team"
