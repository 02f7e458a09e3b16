"""
System Settings Module

Каталог системных настроек macOS и их сверка с текущим состоянием:
- verify / verify_all: классификация applied / not_applied / error / unverifiable
- apply / apply_many: применение с запросом прав администратора
- restore / restore_many: возврат значений по умолчанию
"""

from .core.types import (
    SettingCategory, Classification, CommandCheck, NoCheck, RestoreCommand, NotRestorable,
    SettingDefinition, SettingStatus, ApplyOutcome, ApplyErrorKind, SettingsConfig,
    SipStatus, SystemReport
)
from .core.catalog import SettingCatalog, DEFAULT_CATALOG
from .core.config import SettingsConfigManager
from .core.reconciler import SettingReconciler
from .core import classifiers

__all__ = [
    'SettingCategory',
    'Classification',
    'CommandCheck',
    'NoCheck',
    'RestoreCommand',
    'NotRestorable',
    'SettingDefinition',
    'SettingStatus',
    'ApplyOutcome',
    'ApplyErrorKind',
    'SettingsConfig',
    'SipStatus',
    'SystemReport',
    'SettingCatalog',
    'DEFAULT_CATALOG',
    'SettingsConfigManager',
    'SettingReconciler',
    'classifiers',
]
