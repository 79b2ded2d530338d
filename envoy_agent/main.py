import sys
import logging
from pathlib import Path
from typing import List

from envoy_agent.log.setup import setup_logging
from envoy_agent.local import build_proxy_config
from envoy_agent.local.script_entry import proxy as proxy_entry
from envoy_agent.local.supervisor import EnvoyProxy
from envoy_agent.local.supervisor.config_resolver import config_file
from envoy_agent.local.supervisor.process_utils import get_executable_path

log = logging.getLogger("console")


def check_configuration() -> bool:
    """
    Validates that the proxy binary and the configured files exist.

    :return: True if the configuration looks usable, otherwise False.
    """
    log.info("Performing configuration and path validation...")
    config = build_proxy_config()
    checks = {"Envoy binary": get_executable_path(config.binary_path)}
    if config.custom_config_file:
        checks["Custom config file"] = config.custom_config_file
    if config.bootstrap_override_path:
        checks["Bootstrap override"] = config.bootstrap_override_path

    all_ok = True
    for name, path in checks.items():
        if not Path(path).exists():
            log.error(f"CONFIG CHECK FAILED: {name} not found at '{path}'")
            all_ok = False
        else:
            log.info(f"Config Check OK: Found {name} at '{path}'")
    return all_ok


def show_args(args: List[str]) -> bool:
    """Prints the startup arguments the proxy would get for an epoch."""
    epoch = int(args[0]) if args and args[0].isdigit() else 0
    proxy = EnvoyProxy(build_proxy_config())
    if "--drain" in args:
        fname = proxy.drain_path
    elif proxy.config.custom_config_file:
        fname = proxy.config.custom_config_file
    else:
        fname = config_file(proxy.config.config_dir, epoch)
    print(" ".join([str(get_executable_path(proxy.config.binary_path))] + proxy.args(fname, epoch)))
    return True


def probe() -> bool:
    """Checks once whether the local proxy reports LIVE."""
    live = EnvoyProxy(build_proxy_config()).is_live()
    print("live" if live else "not live")
    return live


def print_help() -> bool:
    print("Usage: python -m envoy_agent.main <command> [args] [--verbose]")
    print("  run                  Run proxy epoch 0 in the foreground until signalled.")
    print("  probe                Check once whether the proxy admin endpoint reports LIVE.")
    print("  args [epoch] [--drain]  Print the proxy command line for an epoch.")
    print("  check-config         Validate the configured binary and files.")
    print("  help                 Show this message.")
    return True


def execute_command(command: str, args: List[str]) -> int:
    """
    Executes a single command.

    :param command: The command name (e.g., 'run', 'probe').
    :param args: The remaining arguments.
    :return int: The process exit status.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "probe": probe,
        "args": lambda: show_args(args),
        "check-config": check_configuration,
        "help": print_help,
    }

    if command == "run":
        return proxy_entry.main()
    if command in command_map:
        return 0 if command_map[command]() else 1

    log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
    return 2


def main() -> int:
    """The main entry point for the agent."""
    argv = sys.argv[1:]
    verbose = "--verbose" in argv
    if verbose:
        argv.remove("--verbose")
    setup_logging(logging.DEBUG if verbose else logging.INFO)

    if not argv:
        print_help()
        return 2
    return execute_command(argv[0].lower(), argv[1:])


if __name__ == "__main__":
    sys.exit(main())
