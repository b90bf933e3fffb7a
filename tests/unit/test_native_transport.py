import ctypes
import threading
import time
from types import SimpleNamespace

import pytest

from r2bridge.core.r2_session import R2Session, open_api, open_native
from r2bridge.errors import CapabilityError, ConstructionError, StreamError
from r2bridge.transports import bindings
from r2bridge.transports.bindings import CoreBindings, library_filename, resolve_bindings
from r2bridge.transports.native import CoreTransport


class FakeCore:
    """Records what a CoreTransport does with its bindings."""

    def __init__(self, outputs=None, null_core=False):
        self.outputs = outputs or {}
        self.null_core = null_core
        self.commands = []
        self.freed_cores = []
        self.freed_strings = []
        self._buffers = []

    def core_new(self):
        return None if self.null_core else 0xC0FE

    def core_free(self, core):
        self.freed_cores.append(core)

    def core_cmd_str(self, core, command):
        self.commands.append(command)
        output = self.outputs.get(command.decode())
        if output is None:
            return None
        buffer = ctypes.create_string_buffer(output.encode())
        self._buffers.append(buffer)
        return ctypes.addressof(buffer)

    def free_str(self, address):
        self.freed_strings.append(address)

    def bindings(self):
        return CoreBindings(
            origin="fake",
            core_new=self.core_new,
            core_free=self.core_free,
            core_cmd_str=self.core_cmd_str,
            free_str=self.free_str,
        )


def test_execute_returns_output_and_frees_string():
    fake = FakeCore({"?e hi": "hi\n"})
    transport = CoreTransport(fake.bindings())
    assert transport.execute("?e hi") == "hi"
    assert len(fake.freed_strings) == 1


def test_output_is_trimmed_like_pipe_responses():
    fake = FakeCore({"ps": "Hello World\n", "pd 2": "nop\nret\n\n"})
    session = R2Session(CoreTransport(fake.bindings()))
    assert session.cmd("ps") == "Hello World"
    assert session.cmd("pd 2") == "nop\nret"


def test_close_waits_for_running_command():
    class SlowCore(FakeCore):
        def __init__(self):
            super().__init__({"aaa": "done\n"})
            self.started = threading.Event()
            self.in_call = False
            self.freed_during_call = False

        def core_cmd_str(self, core, command):
            self.in_call = True
            self.started.set()
            time.sleep(0.2)
            self.in_call = False
            return super().core_cmd_str(core, command)

        def core_free(self, core):
            self.freed_during_call = self.in_call
            super().core_free(core)

    fake = SlowCore()
    session = R2Session(CoreTransport(fake.bindings()))
    results = []
    worker = threading.Thread(target=lambda: results.append(session.cmd("aaa")))
    worker.start()
    assert fake.started.wait(5)
    session.close()
    worker.join(5)

    assert results == ["done"]
    assert fake.freed_cores == [0xC0FE]
    assert not fake.freed_during_call


def test_execute_null_result_is_empty():
    fake = FakeCore()
    transport = CoreTransport(fake.bindings())
    assert transport.execute("w x") == ""
    assert fake.freed_strings == []


def test_target_is_opened_after_creation():
    fake = FakeCore()
    CoreTransport(fake.bindings(), "/bin/ls")
    assert fake.commands == [b"o /bin/ls"]


def test_no_open_command_without_target():
    fake = FakeCore()
    CoreTransport(fake.bindings())
    assert fake.commands == []


def test_null_core_is_construction_error():
    with pytest.raises(ConstructionError):
        CoreTransport(FakeCore(null_core=True).bindings())


def test_shutdown_frees_once():
    fake = FakeCore()
    transport = CoreTransport(fake.bindings())
    transport.shutdown()
    transport.shutdown(force=True)
    assert fake.freed_cores == [0xC0FE]
    with pytest.raises(StreamError):
        transport.execute("i")


def test_session_over_native_transport_has_no_events():
    fake = FakeCore({"ij": '{"core": {"size": 4}}'})
    session = R2Session(CoreTransport(fake.bindings()))
    assert session.cmdj("ij") == {"core": {"size": 4}}
    with pytest.raises(CapabilityError):
        session.on("errmsg", None, lambda *args: False)
    session.close()
    session.close()
    assert fake.freed_cores == [0xC0FE]


@pytest.mark.parametrize(
    "platform,expected",
    [
        ("linux", "libr_core.so"),
        ("freebsd13", "libr_core.so"),
        ("darwin", "libr_core.dylib"),
        ("win32", "libr_core.dll"),
    ],
)
def test_library_filename(platform, expected):
    assert library_filename("libr_core", platform) == expected


def test_resolve_bindings_names_missing_symbol():
    lib = SimpleNamespace(r_core_new=SimpleNamespace())
    with pytest.raises(ConstructionError) as exc_info:
        resolve_bindings(lib, "libr_core.so")
    assert "r_core_free" in str(exc_info.value)
    assert exc_info.value.context["symbol"] == "r_core_free"


def fake_library():
    return SimpleNamespace(
        r_core_new=SimpleNamespace(),
        r_core_free=SimpleNamespace(),
        r_core_cmd_str=SimpleNamespace(),
        free=SimpleNamespace(),
    )


def test_load_native_library_failure_leaves_singleton_unset(monkeypatch):
    monkeypatch.setattr(bindings, "_NATIVE_BINDINGS", None)

    def missing(*args, **kwargs):
        raise OSError("cannot open shared object file")

    monkeypatch.setattr(ctypes, "CDLL", missing)
    with pytest.raises(ConstructionError):
        bindings.load_native_library("libr_core")
    assert not bindings.native_library_loaded()


def test_load_native_library_is_process_wide(monkeypatch):
    monkeypatch.setattr(bindings, "_NATIVE_BINDINGS", None)
    opened = []

    def fake_cdll(name, *args, **kwargs):
        opened.append(name)
        return fake_library()

    monkeypatch.setattr(ctypes, "CDLL", fake_cdll)
    first = bindings.load_native_library("libr_core")
    second = bindings.load_native_library("libr_core")
    assert first is second
    assert bindings.native_library_loaded()
    assert opened.count(library_filename("libr_core")) == 1


def test_linked_bindings_missing_symbols(monkeypatch):
    monkeypatch.setattr(ctypes, "CDLL", lambda *args, **kwargs: SimpleNamespace())
    with pytest.raises(ConstructionError):
        bindings.linked_bindings()


def test_open_native_propagates_load_failure(monkeypatch):
    monkeypatch.setattr(bindings, "_NATIVE_BINDINGS", None)

    def missing(*args, **kwargs):
        raise OSError("not found")

    monkeypatch.setattr(ctypes, "CDLL", missing)
    with pytest.raises(ConstructionError):
        open_native("/bin/ls")


def test_open_api_builds_session(monkeypatch):
    fake = FakeCore()
    monkeypatch.setattr(CoreTransport, "linked", classmethod(lambda cls, target="": cls(fake.bindings(), target)))
    session = open_api("malloc://16")
    assert session.is_open
    assert fake.commands == [b"o malloc://16"]
    session.close()
