"""Request and reply types of the versioned key/value service."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Err(str, Enum):
    """Error values returned by the server and the clerk."""

    OK = "OK"
    ERR_NO_KEY = "ErrNoKey"
    ERR_VERSION = "ErrVersion"
    # returned by the clerk only
    ERR_MAYBE = "ErrMaybe"
    ERR_WRONG_LEADER = "ErrWrongLeader"
    ERR_WRONG_GROUP = "ErrWrongGroup"


@dataclass
class PutArgs:
    key: str = ""
    value: str = ""
    version: int = 0


@dataclass
class PutReply:
    err: str = ""


@dataclass
class GetArgs:
    key: str = ""


@dataclass
class GetReply:
    value: str = ""
    version: int = 0
    err: str = ""