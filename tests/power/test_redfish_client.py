import pytest
import requests

from rackhd_machine.errors import PowerAPIError
from rackhd_machine.power.client import RedfishClient

BASE = "https://rackhd:8443/redfish/v1"


def test_ping(make_session, response):
    s = make_session(response(payload=[]))
    RedfishClient(BASE, session=s).ping()
    assert s.requests[0][:2] == ("GET", f"{BASE}/AccountService/Roles")


def test_ping_unreachable(make_session):
    s = make_session(requests.ConnectTimeout("timed out"))
    with pytest.raises(PowerAPIError):
        RedfishClient(BASE, session=s).ping()


def test_get_power_state(make_session, response):
    s = make_session(response(payload={"Id": "n1", "PowerState": "On"}))
    assert RedfishClient(BASE, session=s).get_power_state("n1") == "On"
    assert s.requests[0][1] == f"{BASE}/Systems/n1"


@pytest.mark.parametrize("resp_kw", [{"payload": {"Id": "n1"}}, {"text": "not json"}])
def test_get_power_state_bad_payload(make_session, response, resp_kw):
    s = make_session(response(**resp_kw))
    with pytest.raises(PowerAPIError):
        RedfishClient(BASE, session=s).get_power_state("n1")


def test_get_power_state_http_error(make_session, response):
    s = make_session(response(status_code=500, text="oops"))
    with pytest.raises(PowerAPIError) as ei:
        RedfishClient(BASE, session=s).get_power_state("n1")
    assert ei.value.status_code == 500


def test_reset(make_session, response):
    s = make_session(response(status_code=202))
    RedfishClient(BASE, session=s).reset("n1", "GracefulRestart")
    method, url, kw = s.requests[0]
    assert (method, url) == ("POST", f"{BASE}/Systems/n1/Actions/ComputerSystem.Reset")
    assert kw["json"] == {"reset_type": "GracefulRestart"}


def test_reset_rejects_unknown_type(make_session):
    s = make_session()
    with pytest.raises(ValueError):
        RedfishClient(BASE, session=s).reset("n1", "PushPowerButton")
    assert s.requests == []
