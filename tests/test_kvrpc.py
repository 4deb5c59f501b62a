import io

import pytest

from distlab import labgob
from distlab.kvrpc import Err, GetArgs, GetReply, PutArgs, PutReply


def _round_trip(value):
    buf = io.BytesIO()
    labgob.Encoder(buf).encode(value)
    return labgob.Decoder(io.BytesIO(buf.getvalue())).decode()


def test_err_values_compare_as_strings():
    assert Err.OK == "OK"
    assert Err("ErrMaybe") is Err.ERR_MAYBE
    assert Err("ErrWrongLeader") is Err.ERR_WRONG_LEADER


def test_unknown_err_rejected():
    with pytest.raises(ValueError):
        Err("NotAnError")


@pytest.mark.parametrize(
    "value",
    [
        PutArgs(key="k", value="6.5840", version=3),
        PutReply(err=Err.ERR_VERSION),
        GetArgs(key="k"),
        GetReply(value="v", version=7, err=Err.OK),
    ],
)
def test_round_trip_through_labgob(value):
    assert _round_trip(value) == value


def test_decoded_err_matches_enum():
    got = _round_trip(PutReply(err=Err.ERR_NO_KEY))
    assert Err(got.err) is Err.ERR_NO_KEY


def test_decode_into_fresh_reply():
    buf = io.BytesIO()
    labgob.Encoder(buf).encode(GetReply(value="x", version=2, err=Err.OK))
    reply = labgob.Decoder(io.BytesIO(buf.getvalue())).decode_into(GetReply())
    assert reply == GetReply(value="x", version=2, err=Err.OK)


def test_defaults_are_zero_values():
    reply = GetReply()
    assert (reply.value, reply.version, reply.err) == ("", 0, "")