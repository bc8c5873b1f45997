import signal
import sys

import pytest

from ctl_cluster.config import CTL_SERVER_READY_MARKER, ServerConfig, ServiceType
from ctl_cluster.context import EnvContext
from ctl_cluster.errors import ProcessExitedEarly, ProcessSpawnError, ReadinessTimeout
from ctl_cluster.factories import CtlServerFactory
from ctl_cluster.lifecycle import ServiceState
from ctl_cluster.ports import is_port_available
from ctl_cluster.process import ManagedProcess, live_processes
from ctl_cluster.readiness import any_line, line_contains, wait_for_output
from ctl_cluster.services import CtlServerService
from ctl_cluster.wait import RetryPolicy

from conftest import free_ports


@pytest.fixture
def processes():
    started = []
    yield started
    for p in started:
        p.kill()
        if p.is_started():
            p.wait(timeout=5)
            p.release()


def python_cmd(code: str) -> list[str]:
    return [sys.executable, "-u", "-c", code]


def test_missing_executable_raises_spawn_error(tmp_path):
    missing = str(tmp_path / "no-such-binary")
    with pytest.raises(ProcessSpawnError) as e:
        ManagedProcess.spawn("ghost", [missing])
    assert missing in str(e.value)


def test_wait_for_any_line(processes, tmp_path):
    logfile = tmp_path / "service.log"
    p = ManagedProcess.spawn(
        "hello",
        python_cmd("print('hello'); import time; time.sleep(30)"),
        logfile=str(logfile),
    )
    processes.append(p)

    assert wait_for_output(p, any_line, timeout=10) == "hello"
    assert p in live_processes()
    assert logfile.read_text().startswith("(process started as:")


def test_wait_for_marker_skips_other_lines(processes):
    p = ManagedProcess.spawn(
        "indexer",
        python_cmd(
            "print('syncing'); print('Intersection found at slot 0'); "
            "import time; time.sleep(30)"
        ),
    )
    processes.append(p)

    line = wait_for_output(p, line_contains("Intersection found"), timeout=10)
    assert line == "Intersection found at slot 0"


def test_exit_before_marker_raises_exited_early(processes):
    p = ManagedProcess.spawn("crasher", python_cmd("print('boom'); raise SystemExit(3)"))
    processes.append(p)

    with pytest.raises(ProcessExitedEarly) as e:
        wait_for_output(p, line_contains("never printed"), timeout=10)
    assert e.value.returncode == 3
    assert e.value.output_tail == ["boom"]


def test_silent_process_times_out(processes):
    p = ManagedProcess.spawn("silent", python_cmd("import time; time.sleep(30)"))
    processes.append(p)

    with pytest.raises(ReadinessTimeout):
        wait_for_output(p, any_line, timeout=0.5)
    assert p.check_status()


def test_release_refuses_running_process(processes):
    p = ManagedProcess.spawn("sleeper", python_cmd("import time; time.sleep(30)"))
    processes.append(p)
    with pytest.raises(RuntimeError):
        p.release()


def test_service_stop_releases_port(tmp_path, make_binaries):
    (port,) = free_ports(1)
    (ogmios_port,) = free_ports(1)
    ctx = EnvContext(workdir=tmp_path / "work", readiness_timeout=20)
    factory = CtlServerFactory(make_binaries().ctl_server)

    svc = factory.create(ctx, ServerConfig(port=port), ServerConfig(port=ogmios_port))
    assert svc.state == ServiceState.Ready
    assert CTL_SERVER_READY_MARKER in svc.output_tail()
    assert not is_port_available(port)

    svc.stop()
    assert svc.state == ServiceState.Stopped
    assert is_port_available(port)
    assert svc not in live_processes()
    assert (tmp_path / "work" / "ctl_server" / "service.log").exists()


def test_service_that_exits_early_is_cleaned_up():
    (port,) = free_ports(1)
    svc = CtlServerService(
        ServiceType.CtlServer,
        {"host": "127.0.0.1", "port": port, "url": f"http://127.0.0.1:{port}"},
        python_cmd("print('cannot reach ogmios'); raise SystemExit(1)"),
        host="127.0.0.1",
        port=port,
    )
    svc.start()
    with pytest.raises(ProcessExitedEarly):
        svc.wait_for_ready(timeout=10)
    assert svc.state == ServiceState.FailedToStart
    assert not svc.check_status()
    assert svc not in live_processes()


def test_service_ignoring_sigint_is_killed_and_port_released():
    (port,) = free_ports(1)
    code = (
        "import signal, socket, time\n"
        "signal.signal(signal.SIGINT, signal.SIG_IGN)\n"
        "s = socket.socket()\n"
        f"s.bind(('127.0.0.1', {port}))\n"
        "s.listen()\n"
        f"print('{CTL_SERVER_READY_MARKER}', flush=True)\n"
        "time.sleep(60)\n"
    )
    svc = CtlServerService(
        ServiceType.CtlServer,
        {"host": "127.0.0.1", "port": port, "url": f"http://127.0.0.1:{port}"},
        python_cmd(code),
        host="127.0.0.1",
        port=port,
        retry_policy=RetryPolicy(delay=0.05, budget=0.5),
    )
    svc.start()
    svc.wait_for_ready(timeout=10)
    assert not is_port_available(port)

    svc.stop()
    assert svc.state == ServiceState.Stopped
    assert svc.exit_code() == -signal.SIGKILL
    assert is_port_available(port)
    assert svc not in live_processes()
