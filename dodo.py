# -*- coding: utf-8 -*-
# pydoit task file
# see https://pydoit.org/
# run from this dir with `doit`, or `doit list`, `doit help` etc. (pip install doit 1st)

from doit.action import CmdAction


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    offline=False,
    retry=False,
    print_logs=False,
    full_trace=False,
):
    """Helper function to build pytest commands for test tasks."""
    cmd = ["pytest"]

    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")

    cmd.extend(["--color=yes", "-vv", "-x"])

    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])

    markers = []
    if speed in ["not slow", "fast"]:
        markers.append("not slow")
    elif speed == "slow":
        markers.append("slow")
    elif speed not in ["", "all"]:
        raise ValueError(
            f"Invalid speed filter: {speed}. Use 'slow', 'not slow', 'fast', or 'all'"
        )
    if offline:
        markers.append("not network")
    if markers:
        cmd.extend(["-m", '"' + " and ".join(markers) + '"'])

    cmd.append(test_dir)

    return " ".join(cmd)


def task_make_env():
    """Create a virtual environment"""
    return {
        "actions": ["python3 -m venv ./venv"],
        "targets": ["./venv"],
        "uptodate": [True],  # Only run if target doesn't exist
        "verbosity": 2,
    }


def task_install():
    """Install irrisync in editable mode, with test dependencies"""
    return {
        "actions": ["pip install -e .[test]"],
        "task_dep": ["make_env"],
        "verbosity": 2,
    }


def task_test():
    """Run the test suite (test in test/logic/)."""

    def router(keyword, speed, offline, retry, print_logs, full_trace):
        try:
            return _build_pytest_command(
                "test/logic/",
                keyword=keyword,
                speed=speed,
                offline=offline,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    return {
        "actions": [CmdAction(router)],
        "params": [
            {"name": "keyword", "short": "k", "default": ""},
            {"name": "speed", "short": "s", "default": ""},
            {"name": "offline", "short": "o", "default": False, "type": bool},
            {"name": "retry", "short": "r", "default": False, "type": bool},
            {"name": "print_logs", "short": "p", "default": False, "type": bool},
            {"name": "full_trace", "short": "f", "default": False, "type": bool},
        ],
        "verbosity": 2,
    }
