import argparse
import os
import subprocess
import sys

SERVICES: dict[str, str] = {
    # friendly_name -> module path and arguments
    "triggers": "services/trigger_service/src/main.py --port 8002",
}

SESSION_PREFIX = "dmfl-"


def _session_name(service: str) -> str:
    return f"{SESSION_PREFIX}{service}"


def _tmux(*args: str, check: bool = False) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(["tmux", *args], capture_output=True, check=check)
    except FileNotFoundError:
        print("Error: 'tmux' command not found. Install tmux or run the service module directly:")
        print("  python -m services.trigger_service.src.main --port 8002")
        sys.exit(1)


def _is_running(service: str) -> bool:
    return _tmux("has-session", "-t", _session_name(service)).returncode == 0


def _launch(service: str, force: bool) -> None:
    project_root = os.path.dirname(os.path.abspath(__file__))
    script_path, *script_args = SERVICES[service].split()
    module_path = script_path.removesuffix(".py").replace("/", ".")

    if _is_running(service):
        if not force:
            print(f"'{service}' is already running. Use -f/--force to restart it.")
            return
        print(f"Restarting '{service}'...")
        _tmux("kill-session", "-t", _session_name(service))

    # Keep the service alive across crashes; a stale busy flag is cleared on start
    loop_cmd = (
        f'cd "{project_root}" && while true; do "{sys.executable}" -m {module_path} '
        f"{' '.join(script_args)}; echo '{service} exited. Restarting in 5 seconds...'; "
        "sleep 5; done"
    )
    _tmux("new-session", "-d", "-s", _session_name(service), loop_cmd, check=True)
    print(f"Launched '{service}' in tmux session '{_session_name(service)}'")


def _stop(service: str) -> None:
    if not _is_running(service):
        print(f"'{service}' is not running. Nothing to stop.")
        return
    _tmux("kill-session", "-t", _session_name(service), check=True)
    print(f"Stopped '{service}'")


def _print_status() -> None:
    for service in SERVICES:
        state = "running" if _is_running(service) else "stopped"
        print(f"{service:<12} {state}")


def _selected(names: list[str]) -> list[str]:
    chosen = []
    for name in names or list(SERVICES):
        if name in SERVICES:
            chosen.append(name)
        else:
            print(f"Unknown service '{name}'. Known: {', '.join(SERVICES)}")
    return list(dict.fromkeys(chosen))


def main():
    """
    Manage DMFL services in tmux.
    - --launch / --stop take service names; with no names they act on all services.
    - --status lists which services are running.
    - Re-launching a running service is refused unless -f/--force is given.
    """
    parser = argparse.ArgumentParser(description="Manage DMFL services in tmux")
    parser.add_argument("--launch", nargs="*", help=f"Services to launch: {', '.join(SERVICES)}")
    parser.add_argument("--stop", nargs="*", help=f"Services to stop: {', '.join(SERVICES)}")
    parser.add_argument("--status", action="store_true", help="Show which services are running")
    parser.add_argument(
        "-f", "--force", action="store_true", help="Restart services that are already running"
    )
    args = parser.parse_args()

    if args.launch is None and args.stop is None and not args.status:
        parser.print_help()
        sys.exit(0)

    if args.stop is not None:
        for name in _selected(args.stop):
            _stop(name)

    if args.launch is not None:
        for name in _selected(args.launch):
            _launch(name, args.force)

    if args.status:
        _print_status()


if __name__ == "__main__":
    main()
