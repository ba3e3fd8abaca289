import socket

import pytest

from rawclient.errors import ResolutionError
from rawclient.resolver import resolve


def test_resolves_loopback_literal():
    address = resolve("127.0.0.1", 8080)

    assert address.family == socket.AF_INET
    assert address.family_name == "IPv4"
    assert address.ip == "127.0.0.1"
    assert address.port == 8080
    assert address.socktype == socket.SOCK_STREAM


def test_first_result_is_used(monkeypatch):
    results = [
        (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 80, 0, 0)),
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 80)),
    ]
    monkeypatch.setattr(socket, "getaddrinfo", lambda *args: results)

    address = resolve("dual.test", 80)

    assert address.family_name == "IPv6"
    assert address.sockaddr == ("::1", 80, 0, 0)


def test_unresolvable_host(monkeypatch):
    def fail(*args):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", fail)

    with pytest.raises(ResolutionError) as excinfo:
        resolve("no-such-host.invalid", 80)

    assert excinfo.value.exit_code == 2
    assert "no-such-host.invalid" in str(excinfo.value)


def test_empty_results(monkeypatch):
    monkeypatch.setattr(socket, "getaddrinfo", lambda *args: [])

    with pytest.raises(ResolutionError):
        resolve("empty.test", 80)


def test_empty_host():
    with pytest.raises(ResolutionError):
        resolve("", 80)
