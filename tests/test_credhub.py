import pytest
import responses

from buildpack_lifecycle.credhub import Credhub, CredhubError

CREDHUB_URL = "https://credhub.example.com"
INTERPOLATE_URL = CREDHUB_URL + "/api/v1/interpolate"
VCAP_SERVICES = '{"my-server":[{"credentials":{"credhub-ref":"(//my-server/creds)"}}]}'


class _ReadOnlyEnviron(dict):
    def __setitem__(self, key, value):
        raise OSError(f"Setenv: setting {key} failed")


@pytest.fixture
def environ(tmp_path):
    certs = tmp_path / "certs"
    certs.mkdir()
    (certs / "client.crt").write_text("client certificate")
    (certs / "client.key").write_text("client key")
    cacerts = tmp_path / "cacerts"
    cacerts.mkdir()
    (cacerts / "CA.crt").write_text("ca certificate")
    (cacerts / "notes.txt").write_text("ignored")
    return {
        "CF_INSTANCE_CERT": str(certs / "client.crt"),
        "CF_INSTANCE_KEY": str(certs / "client.key"),
        "CF_SYSTEM_CERT_PATH": str(cacerts),
        "VCAP_SERVICES": VCAP_SERVICES,
    }


def test_no_refs_and_no_tls_leaves_services_untouched(environ):
    for key in ("CF_INSTANCE_CERT", "CF_INSTANCE_KEY", "CF_SYSTEM_CERT_PATH"):
        del environ[key]
    value = '{"my-server":[{"credentials":{"no refs here":"and this string containing credhub-ref doesnt count"}}]}'
    environ["VCAP_SERVICES"] = value
    Credhub(environ).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == value


def test_successful_interpolation_updates_services(environ):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, INTERPOLATE_URL, body="INTERPOLATED_JSON", status=200)
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)
        assert rsps.calls[0].request.body == VCAP_SERVICES.encode()
    assert environ["VCAP_SERVICES"] == "INTERPOLATED_JSON"


def test_failure_to_update_services(environ):
    read_only = _ReadOnlyEnviron(environ)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, INTERPOLATE_URL, body="INTERPOLATED_JSON", status=200)
        with pytest.raises(
            CredhubError,
            match="Unable to update VCAP_SERVICES with interpolated credhub references",
        ):
            Credhub(read_only).interpolate_service_refs(CREDHUB_URL)


def test_credhub_failure_leaves_services_untouched(environ):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, INTERPOLATE_URL, body="{}", status=500)
        with pytest.raises(CredhubError, match="Unable to interpolate credhub references"):
            Credhub(environ).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == VCAP_SERVICES


def test_invalid_instance_cert(environ, tmp_path):
    environ["CF_INSTANCE_CERT"] = str(tmp_path / "not_a_cert")
    environ["CF_INSTANCE_KEY"] = str(tmp_path / "not_a_cert")
    with pytest.raises(CredhubError, match="Unable to set up credhub client"):
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == VCAP_SERVICES


def test_missing_instance_cert_and_key(environ):
    del environ["CF_INSTANCE_CERT"]
    del environ["CF_INSTANCE_KEY"]
    with pytest.raises(CredhubError, match="Missing CF_INSTANCE_CERT and/or CF_INSTANCE_KEY"):
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == VCAP_SERVICES


def test_missing_system_cert_path(environ):
    del environ["CF_SYSTEM_CERT_PATH"]
    with pytest.raises(CredhubError, match="Missing CF_SYSTEM_CERT_PATH"):
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == VCAP_SERVICES


def test_unreadable_system_cert_path(environ, tmp_path):
    environ["CF_SYSTEM_CERT_PATH"] = str(tmp_path / "missing")
    with pytest.raises(CredhubError, match="Can't read contents of system cert path"):
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)


def test_skip_interpolation(environ):
    environ["CREDHUB_SKIP_INTERPOLATION"] = "true"
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.POST, INTERPOLATE_URL, body="JSON_RESPONSE", status=200)
        Credhub(environ).interpolate_service_refs(CREDHUB_URL)
        assert len(rsps.calls) == 0
    assert environ["VCAP_SERVICES"] == VCAP_SERVICES


def test_path_for_resolves_container_paths(environ, tmp_path):
    environ["CF_INSTANCE_CERT"] = "/certs/client.crt"
    environ["CF_INSTANCE_KEY"] = "/certs/client.key"
    environ["CF_SYSTEM_CERT_PATH"] = "/cacerts"
    root = str(tmp_path)

    def path_for(path):
        return root + path

    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, INTERPOLATE_URL, body="INTERPOLATED_JSON", status=200)
        Credhub(environ, path_for=path_for).interpolate_service_refs(CREDHUB_URL)
    assert environ["VCAP_SERVICES"] == "INTERPOLATED_JSON"