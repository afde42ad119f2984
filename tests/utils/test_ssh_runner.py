import types

import pytest

import rackhd_machine.utils.ssh_runner as mod
from rackhd_machine.utils.ssh_runner import SSHCommandError, SSHRunner, open_ssh

# ----------------- Fakes for Paramiko -----------------

class _FakeChannel:
    def __init__(self, rc=0): self._rc = rc
    def recv_exit_status(self): return self._rc

class _Buf:
    def __init__(self, s=""): self._s = s
    def read(self): return self._s.encode()

class FakeSSHClient:
    def __init__(self, log=None, responses=None):
        self.log = [] if log is None else log
        self._responses = responses or {}
    def set_missing_host_key_policy(self, policy):
        self.log.append(("policy", type(policy).__name__))
    def connect(self, **kw):
        self.log.append(("connect", kw))
    def exec_command(self, cmd, timeout=None):
        self.log.append(("exec", cmd, timeout))
        out = self._responses.get(cmd, ("", "", 0))
        stdout = _Buf(out[0])
        stderr = _Buf(out[1])
        stdout.channel = _FakeChannel(out[2])
        return types.SimpleNamespace(write=lambda *a, **k: None), stdout, stderr
    def close(self):
        self.log.append(("close",))

# ----------------- Tests -----------------

def test_run_returns_rc_and_output():
    client = FakeSSHClient(responses={"uname": ("Linux\n", "", 0)})
    rc, out, err = SSHRunner(client).run("uname", timeout=5)
    assert (rc, out, err) == (0, "Linux\n", "")
    assert ("exec", "uname", 5) in client.log


def test_check_raises_on_nonzero():
    client = FakeSSHClient(responses={"false": ("", "nope\n", 1)})
    with pytest.raises(SSHCommandError) as ei:
        SSHRunner(client).check("false")
    assert ei.value.rc == 1
    assert ei.value.cmd == "false"
    assert "nope" in str(ei.value)


def test_context_manager_closes():
    client = FakeSSHClient()
    with SSHRunner(client) as ssh:
        ssh.check("true")
    assert client.log[-1] == ("close",)


def test_open_ssh_password_auth(monkeypatch):
    log = []
    monkeypatch.setattr(mod.paramiko, "SSHClient", lambda: FakeSSHClient(log))

    runner = open_ssh("10.0.0.2", username="root", port=2222, password="pw", connect_timeout=7)

    assert isinstance(runner, SSHRunner)
    connect = [e for e in log if e[0] == "connect"][0][1]
    assert connect["hostname"] == "10.0.0.2"
    assert connect["port"] == 2222
    assert connect["username"] == "root"
    assert connect["password"] == "pw"
    assert connect["timeout"] == 7
    assert connect["allow_agent"] is False
    assert connect["look_for_keys"] is False
    assert ("policy", "AutoAddPolicy") in log
