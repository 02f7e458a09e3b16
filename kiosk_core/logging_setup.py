"""
Настройка логирования kiosk_core
"""

import logging
import logging.handlers
import sys
from typing import Optional

from kiosk_core.config.unified_config_loader import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None, console: bool = True) -> logging.Logger:
    """Настраивает корневой логгер: файл с ротацией, файл ошибок,
    консоль (в режиме разработки) и системный журнал macOS."""
    config = config or LoggingConfig()
    log_level = getattr(logging, config.level.upper(), logging.INFO)

    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    main_log_file = log_dir / config.file
    error_log_file = log_dir / config.error_file

    formatter = logging.Formatter(config.format, '%Y-%m-%d %H:%M:%S')

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Очищаем существующие обработчики
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    # 1. Файл логов (с ротацией)
    file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # 2. Файл ошибок (отдельно)
    error_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    root_logger.addHandler(error_handler)

    # 3. Консоль
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # 4. Системный журнал macOS
    try:
        syslog_handler = logging.handlers.SysLogHandler(
            address='/var/run/syslog',
            facility=logging.handlers.SysLogHandler.LOG_USER
        )
        syslog_handler.setLevel(logging.WARNING)
        syslog_handler.setFormatter(logging.Formatter('%(name)s: %(levelname)s - %(message)s'))
        root_logger.addHandler(syslog_handler)
    except OSError:
        # Сокета syslog нет вне macOS
        pass

    for name, level in config.loggers.items():
        logging.getLogger(name).setLevel(getattr(logging, str(level).upper(), logging.WARNING))

    logger = logging.getLogger(__name__)
    logger.info(f"Директория логов: {log_dir}")
    logger.info(f"Уровень логирования: {logging.getLevelName(log_level)}")
    return logger
