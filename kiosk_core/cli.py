"""
Командная строка kiosk_core

    python -m kiosk_core settings list
    python -m kiosk_core settings verify [ID ...]
    python -m kiosk_core settings apply ID ... | --required
    python -m kiosk_core script --mode restore --all -o restore.sh
    python -m kiosk_core agents install /Applications/App.app
"""

import argparse
import asyncio
import getpass
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kiosk_core.config.unified_config_loader import UnifiedConfigLoader
from kiosk_core.errors import KioskCoreError, ValidationError
from kiosk_core.logging_setup import setup_logging
from kiosk_core.modules.elevation import ElevationManager, ElevationMethod, MacOSElevationBroker, requires_elevation
from kiosk_core.modules.execution_gateway import ShellExecutionGateway
from kiosk_core.modules.launch_agents import KeepAlivePolicy, LaunchAgentManager
from kiosk_core.modules.process_status import StatusCorrelator
from kiosk_core.modules.script_generator import ScriptGenerator, ScriptSpec
from kiosk_core.modules.system_settings import (
    ApplyOutcome, Classification, SettingCategory, SettingReconciler
)

logger = logging.getLogger(__name__)

console = Console()

_CLASSIFICATION_STYLE = {
    Classification.APPLIED: "[green]✅ applied[/green]",
    Classification.NOT_APPLIED: "[yellow]❌ not applied[/yellow]",
    Classification.ERROR: "[red]⚠️ error[/red]",
    Classification.UNVERIFIABLE: "[dim]⚪ unverifiable[/dim]",
}

_KEEP_ALIVE_CHOICES = {
    "always": KeepAlivePolicy.ALWAYS,
    "successful_exit": KeepAlivePolicy.SUCCESSFUL_EXIT,
    "none": None,
}


@dataclass
class Services:
    """Собранные компоненты ядра"""
    gateway: ShellExecutionGateway
    elevation: ElevationManager
    reconciler: SettingReconciler
    scripts: ScriptGenerator
    agents: LaunchAgentManager
    correlator: StatusCorrelator


def build_services(loader: UnifiedConfigLoader) -> Services:
    execution = loader.get_execution_config()
    gateway = ShellExecutionGateway(shell=execution.shell, timeout=execution.timeout)

    elevation_config = loader.get_elevation_config()
    elevation = ElevationManager(MacOSElevationBroker(elevation_config.prompt_name), elevation_config)

    agents_config = loader.get_launch_agents_config()
    correlator = StatusCorrelator(gateway, agents_config.label_suffix)
    return Services(
        gateway=gateway,
        elevation=elevation,
        reconciler=SettingReconciler(gateway, elevation, config=loader.get_settings_config()),
        scripts=ScriptGenerator(config=loader.get_script_config()),
        agents=LaunchAgentManager(gateway, agents_config, correlator),
        correlator=correlator,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiosk_core",
        description="Подготовка macOS к работе в режиме инсталляции",
    )
    parser.add_argument("--config", help="Путь к unified_config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный вывод в консоль")
    commands = parser.add_subparsers(dest="command", required=True)

    # settings
    settings = commands.add_parser("settings", help="Системные настройки")
    settings_commands = settings.add_subparsers(dest="action", required=True)

    settings_list = settings_commands.add_parser("list", help="Каталог настроек")
    settings_list.add_argument("--category", choices=[c.value for c in SettingCategory])

    verify = settings_commands.add_parser("verify", help="Проверить состояние")
    verify.add_argument("ids", nargs="*")

    for name in ("apply", "restore"):
        mutate = settings_commands.add_parser(name, help=f"{name.capitalize()} settings")
        mutate.add_argument("ids", nargs="*")
        mutate.add_argument("--required", action="store_true", help="Только обязательные настройки")
        mutate.add_argument("--method", choices=[m.value for m in ElevationMethod])
        mutate.add_argument("--stop-on-failure", action="store_true")

    settings_commands.add_parser("report", help="Отчёт о системе")
    settings_commands.add_parser("sip", help="Состояние System Integrity Protection")

    # script
    script = commands.add_parser("script", help="Сгенерировать bash-скрипт")
    script.add_argument("ids", nargs="*")
    script.add_argument("--mode", default="apply", choices=["apply", "restore"])
    script.add_argument("--all", action="store_true", help="Весь каталог")
    script.add_argument("--no-verify", action="store_true", help="Без строк #CHECK:")
    script.add_argument("-o", "--output", help="Файл для сохранения")

    # agents
    agents = commands.add_parser("agents", help="LaunchAgents")
    agents_commands = agents.add_subparsers(dest="action", required=True)
    agents_commands.add_parser("list", help="Агенты и их состояние")

    install = agents_commands.add_parser("install", help="Создать и загрузить агента для .app")
    install.add_argument("bundle")
    install.add_argument("--label")
    install.add_argument("--arg", dest="arguments", action="append", default=[])
    install.add_argument("--keep-alive", default="successful_exit", choices=list(_KEEP_ALIVE_CHOICES))
    install.add_argument("--process-type")
    install.add_argument("--no-run-at-load", action="store_true")
    install.add_argument("--env", action="append", default=[], metavar="NAME=VALUE")
    install.add_argument("--workdir")

    uninstall = agents_commands.add_parser("uninstall", help="Выгрузить и удалить агента")
    uninstall.add_argument("label")

    status = agents_commands.add_parser("status", help="launchctl list")
    status.add_argument("filter", nargs="?")
    return parser


def parse_env(pairs: Sequence[str]) -> Dict[str, str]:
    environment: Dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got {pair!r}")
        environment[name] = value
    return environment


# =====================================================
# SETTINGS
# =====================================================

def show_catalog(services: Services, category: Optional[str]) -> int:
    table = Table(title="Системные настройки")
    table.add_column("ID", style="cyan")
    table.add_column("Название")
    table.add_column("Категория")
    table.add_column("Обязательная")
    table.add_column("sudo")
    table.add_column("Откат")
    for definition in services.reconciler.catalog:
        if category and definition.category.value != category:
            continue
        table.add_row(
            definition.id,
            definition.display_name,
            definition.category.title,
            "✓" if definition.required else "",
            "✓" if definition.elevation_required else "",
            "✓" if definition.is_restorable else "-",
        )
    console.print(table)
    return 0


async def verify_settings(services: Services, ids: List[str]) -> int:
    statuses = await services.reconciler.verify_all(ids or None)
    table = Table(title="Состояние настроек")
    table.add_column("ID", style="cyan")
    table.add_column("Статус")
    table.add_column("Сообщение")
    for status in statuses:
        table.add_row(status.setting_id, _CLASSIFICATION_STYLE[status.classification], status.message)
    console.print(table)
    return 0


async def ensure_elevation(services: Services, ids: List[str], method: Optional[str], restore: bool) -> bool:
    """Запросить права заранее, если они понадобятся"""
    definitions = services.reconciler.catalog.resolve(ids)
    commands = [d.restore_command if restore else d.apply_command for d in definitions]
    if not any(command and requires_elevation(command) for command in commands):
        return True

    elevation_method = ElevationMethod(method) if method else services.elevation.config.default_method
    credential = None
    if elevation_method == ElevationMethod.PASSWORD:
        credential = getpass.getpass("Пароль администратора: ")
    outcome = await services.elevation.request_elevation(elevation_method, credential)
    if not outcome.granted:
        console.print(f"[red]Нет прав администратора:[/red] {outcome.reason}")
    return outcome.granted


def show_outcomes(outcomes: List[ApplyOutcome]) -> int:
    failed = 0
    for outcome in outcomes:
        if outcome.succeeded:
            console.print(f"[green]✓[/green] {outcome.message}")
            continue
        failed += 1
        hint = " (повторите авторизацию)" if outcome.declined else ""
        console.print(f"[red]✗[/red] {outcome.message}{hint}")
        if outcome.raw_error.strip():
            console.print(f"[dim]{outcome.raw_error.strip()}[/dim]")
    console.print(f"\nУспешно: {len(outcomes) - failed}, ошибок: {failed}")
    return 1 if failed else 0


async def mutate_settings(services: Services, args: argparse.Namespace) -> int:
    restore = args.action == "restore"
    catalog = services.reconciler.catalog
    ids = [d.id for d in catalog.required()] if args.required else list(args.ids)
    if not ids:
        raise ValidationError("No settings provided")

    if not await ensure_elevation(services, ids, args.method, restore):
        return 1

    stop = True if args.stop_on_failure else None
    if restore:
        outcomes = await services.reconciler.restore_many(ids, stop)
    else:
        outcomes = await services.reconciler.apply_many(ids, stop)
    return show_outcomes(outcomes)


async def show_report(services: Services) -> int:
    report = await services.reconciler.system_report()
    console.print(Panel(
        f"{report.computer_name} ({report.hostname})\n"
        f"{report.platform} {report.version} ({report.build})",
        title="Система",
    ))
    for classification, label in _CLASSIFICATION_STYLE.items():
        console.print(f"{label}: {report.count(classification)}")
    return 0


async def show_sip(services: Services) -> int:
    sip = await services.reconciler.check_sip_status()
    console.print(Panel(sip.message, title=f"SIP: {sip.status}"))
    if sip.recommendation:
        console.print(f"[dim]{sip.recommendation}[/dim]")
    return 0


# =====================================================
# SCRIPT
# =====================================================

def generate_script(services: Services, args: argparse.Namespace) -> int:
    include_verification = not args.no_verify
    if args.all:
        script = services.scripts.generate_all(args.mode, include_verification)
    else:
        script = services.scripts.generate(ScriptSpec(list(args.ids), args.mode, include_verification))

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(script.script_body)
        console.print(f"[green]✓[/green] Скрипт сохранён: {args.output} ({script.settings_count} настроек)")
    else:
        console.print(script.script_body, markup=False, highlight=False, end="")

    if script.not_restorable:
        console.print(f"[yellow]Не восстанавливаются автоматически:[/yellow] {', '.join(script.not_restorable)}")
    return 0


# =====================================================
# AGENTS
# =====================================================

async def list_agents(services: Services) -> int:
    table = Table(title="LaunchAgents")
    table.add_column("Label", style="cyan")
    table.add_column("Группа")
    table.add_column("Загружен")
    table.add_column("PID")
    table.add_column("Файл")
    for overview in await services.agents.overview():
        record = overview.record
        if record.error:
            table.add_row(record.filename, "", "", "", f"[red]{record.error}[/red]")
            continue
        pid = overview.status.pid if overview.status and overview.status.pid is not None else "-"
        table.add_row(
            record.label or record.filename,
            overview.category.value,
            "✓" if overview.loaded else "",
            str(pid),
            record.filepath,
        )
    console.print(table)
    return 0


async def install_agent(services: Services, args: argparse.Namespace) -> int:
    result = await services.agents.install_from_bundle(
        args.bundle,
        label=args.label,
        arguments=args.arguments,
        keep_alive=_KEEP_ALIVE_CHOICES[args.keep_alive],
        process_type=args.process_type,
        run_at_load=not args.no_run_at_load,
        environment=parse_env(args.env),
        working_directory=args.workdir,
    )
    return show_lifecycle(result)


async def uninstall_agent(services: Services, label: str) -> int:
    return show_lifecycle(await services.agents.uninstall(label))


def show_lifecycle(result) -> int:
    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        return 0
    style = "yellow" if result.partial else "red"
    step = f" [{result.failed_step.value}]" if result.failed_step else ""
    console.print(f"[{style}]✗{step}[/{style}] {result.message}")
    return 1


async def show_status(services: Services, label_filter: Optional[str]) -> int:
    table = Table(title="launchctl list")
    table.add_column("PID")
    table.add_column("Status")
    table.add_column("Label", style="cyan")
    for status in await services.correlator.query(label_filter):
        table.add_row(
            "-" if status.pid is None else str(status.pid),
            "-" if status.last_exit_code is None else str(status.last_exit_code),
            status.label,
        )
    console.print(table)
    return 0


async def dispatch(services: Services, args: argparse.Namespace) -> int:
    if args.command == "settings":
        if args.action == "list":
            return show_catalog(services, args.category)
        if args.action == "verify":
            return await verify_settings(services, args.ids)
        if args.action in ("apply", "restore"):
            return await mutate_settings(services, args)
        if args.action == "report":
            return await show_report(services)
        if args.action == "sip":
            return await show_sip(services)
    if args.command == "script":
        return generate_script(services, args)
    if args.command == "agents":
        if args.action == "list":
            return await list_agents(services)
        if args.action == "install":
            return await install_agent(services, args)
        if args.action == "uninstall":
            return await uninstall_agent(services, args.label)
        if args.action == "status":
            return await show_status(services, args.filter)
    raise KioskCoreError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    loader = UnifiedConfigLoader(args.config) if args.config else UnifiedConfigLoader()
    console_logging = args.verbose or loader.get_app_config().is_development
    setup_logging(loader.get_logging_config(), console=console_logging)

    services = build_services(loader)
    try:
        return asyncio.run(dispatch(services, args))
    except (KioskCoreError, argparse.ArgumentTypeError) as e:
        logger.error(f"❌ {e}")
        console.print(f"[red]Ошибка:[/red] {e}")
        return 2
    except KeyboardInterrupt:
        console.print("[yellow]Прервано[/yellow]")
        return 130
