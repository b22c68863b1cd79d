"""Helpers callable from any template, e.g. ``{{ now("%Y") }}``."""

import getpass
import os
import socket
from datetime import datetime
from uuid import uuid4


def env(name: str, default: str = "") -> str:
    return os.environ.get(name, default)


def hostname() -> str:
    return socket.gethostname()


def username() -> str:
    return getpass.getuser()


def now(fmt: str = "%Y-%m-%d") -> str:
    return datetime.now().strftime(fmt)


def uuid() -> str:
    return str(uuid4())


HELPERS = {
    "env": env,
    "hostname": hostname,
    "username": username,
    "now": now,
    "uuid": uuid,
}
