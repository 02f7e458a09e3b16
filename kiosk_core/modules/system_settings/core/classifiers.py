"""
Классификаторы вывода verify-команд

Каждый классификатор - чистая функция (exit_code, stdout) -> Classification.
Ненулевой код выхода всегда означает ERROR: verify-команды, которые могут
не найти ключ, сами подставляют значение по умолчанию через `|| echo`.
"""

from typing import Iterable, Optional

from .types import Classification, Classifier

_TRUE_VALUES = {"1", "true", "yes"}
_FALSE_VALUES = {"0", "false", "no"}


def exact(applied: str, not_applied: Optional[Iterable[str]] = None) -> Classifier:
    """Точное совпадение значения.

    not_applied=None - любое другое непустое значение считается "не применено".
    """
    known_unset = set(not_applied) if not_applied is not None else None

    def classify(exit_code: int, stdout: str) -> Classification:
        value = stdout.strip()
        if exit_code != 0 or not value:
            return Classification.ERROR
        if value == applied:
            return Classification.APPLIED
        if known_unset is None or value in known_unset:
            return Classification.NOT_APPLIED
        return Classification.ERROR

    return classify


def integer(applied: int) -> Classifier:
    """Целое значение: applied или любое другое целое"""

    def classify(exit_code: int, stdout: str) -> Classification:
        if exit_code != 0:
            return Classification.ERROR
        try:
            value = int(stdout.strip())
        except ValueError:
            return Classification.ERROR
        return Classification.APPLIED if value == applied else Classification.NOT_APPLIED

    return classify


def boolean(applied: bool) -> Classifier:
    """Булево значение из `defaults read` (1/0, true/false, YES/NO)"""

    def classify(exit_code: int, stdout: str) -> Classification:
        value = stdout.strip().lower()
        if exit_code != 0:
            return Classification.ERROR
        if value in _TRUE_VALUES:
            parsed = True
        elif value in _FALSE_VALUES:
            parsed = False
        else:
            return Classification.ERROR
        return Classification.APPLIED if parsed == applied else Classification.NOT_APPLIED

    return classify


def contains(applied_marker: str, not_applied_marker: str) -> Classifier:
    """Поиск маркеров в выводе. Маркер applied проверяется первым."""

    def classify(exit_code: int, stdout: str) -> Classification:
        if exit_code != 0:
            return Classification.ERROR
        if applied_marker in stdout:
            return Classification.APPLIED
        if not_applied_marker in stdout:
            return Classification.NOT_APPLIED
        return Classification.ERROR

    return classify


def prefix(applied_prefix: str, not_applied_prefix: str) -> Classifier:
    """Сравнение начала вывода (например строки прав доступа из ls)"""

    def classify(exit_code: int, stdout: str) -> Classification:
        value = stdout.strip()
        if exit_code != 0 or not value:
            return Classification.ERROR
        if value.startswith(applied_prefix):
            return Classification.APPLIED
        if value.startswith(not_applied_prefix):
            return Classification.NOT_APPLIED
        return Classification.ERROR

    return classify


def positive_count() -> Classifier:
    """Вывод `grep -c`: больше нуля - применено, 0 - нет"""

    def classify(exit_code: int, stdout: str) -> Classification:
        if exit_code != 0:
            return Classification.ERROR
        try:
            value = int(stdout.strip())
        except ValueError:
            return Classification.ERROR
        return Classification.APPLIED if value > 0 else Classification.NOT_APPLIED

    return classify


def pmset_value(key: str, applied: str) -> Classifier:
    """Значение ключа из `pmset -g`.

    Строки вида " displaysleep         0 (display sleep prevented by ...)".
    Сравнивается первый токен после имени ключа.
    """

    def classify(exit_code: int, stdout: str) -> Classification:
        if exit_code != 0:
            return Classification.ERROR
        for line in stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] == key:
                if parts[1] == applied:
                    return Classification.APPLIED
                return Classification.NOT_APPLIED if parts[1].lstrip("-").isdigit() else Classification.ERROR
        return Classification.ERROR

    return classify
