# distlab

Building blocks for experimenting with distributed systems in Python. The
package uses only the standard library.

- `distlab.labrpc`: an in-process simulated network. Client ends send RPCs
  to named servers. The network can drop and delay requests and replies,
  reorder replies, and disconnect individual ends.
- `distlab.labgob`: the `Encoder` and `Decoder` that the network uses for
  arguments and replies. Dataclasses are sent by name once passed to
  `register` or `register_name`. Fields whose names start with an underscore
  are never sent, and the encoder reports them. `Decoder.decode_into` fills
  an existing dataclass instance and reports when that instance already
  holds non-default values, because zero values in the incoming data do not
  overwrite them. `error_count()` returns how many such problems have been
  reported.
- `distlab.kvrpc`: the request and reply types of a versioned key/value
  service (`PutArgs`, `PutReply`, `GetArgs`, `GetReply`) and the `Err` codes.
- `distlab.models`: a sequential model of a versioned key/value register for
  linearizability checks: `kv_partition`, `kv_init`, `kv_step` and
  `kv_describe_operation`, working on `Operation`, `KvInput`, `KvOutput` and
  `KvState`.
- `distlab.kvtest`: helpers for key/value clerks. A clerk is any object
  with `get(key)` returning `(value, version, err)` and
  `put(key, value, version)` returning an error code. It provides an
  operation log (`OpLog`), `logged_get` and `logged_put`,
  `put_at_least_once`, `rand_value`, `make_keys`, and the checks
  `check_put_concurrent` and `check_appends`, which raise `CheckError`.
- `distlab.mapreduce`: the `KeyValue` type, the `ihash` partitioning
  function and `coordinator_sock`.
- `distlab.mrapps`: map/reduce applications, looked up with `load_app`.
- `distlab.sequential`: a sequential MapReduce runner.

## Install

```
pip install .
pip install ".[test]"   # with the test dependencies
```

## Simulated RPC

```python
from distlab.labrpc import Network, Server, Service

class Echo:
    def Double(self, x):
        return 2 * x

net = Network()
end = net.make_end("client-1")
server = Server()
server.add_service(Service(Echo()))
net.add_server("server-1", server)
net.connect("client-1", "server-1")
net.enable("client-1", True)

print(end.call("Echo.Double", 21))   # 42
print(net.get_count("server-1"))     # 1
net.cleanup()
```

Any public method of the receiver that takes exactly one argument handles
RPCs, and its return value is the reply. New ends start disabled and
unconnected. A call raises `RpcError` when no reply arrives: the request or
the reply was lost, the end is disabled or unconnected, the server was
deleted with `delete_server`, or the network was cleaned up.

The properties `reliable`, `long_delays` and `long_reordering` switch the
network's faults on and off. `total_count` and `total_bytes` report traffic.
`Network` can also be used as a context manager, which calls `cleanup` on
exit.

## Sequential MapReduce

Run a map/reduce application over a set of input files. The result goes to
`mr-out-0` in the current directory:

```
distlab-mrsequential wc pg-1.txt pg-2.txt
```

The application names are `wc`, `indexer`, `crash`, `nocrash`,
`early_exit`, `jobcount`, `mtiming` and `rtiming`. A path such as
`../mrapps/wc.so` is accepted as well; only its stem is used. From Python:

```python
from distlab.mrapps import load_app
from distlab.sequential import run_sequential

mapf, reducef = load_app("wc")
run_sequential(mapf, reducef, ["pg-1.txt"], "mr-out-0")
```

Each line of the output holds a key and the reduce result, separated by a
space, with the keys in sorted order.

Some applications exist to probe fault tolerance and timing. `crash` exits
the process at random and sometimes stalls for up to ten seconds.
`early_exit` pauses on some keys. `jobcount`, `mtiming` and `rtiming` leave
marker files named `mr-worker-*` in the current directory.

## What the package does not do

- There is no MapReduce coordinator or distributed worker. Only the
  sequential runner executes applications. `coordinator_sock` names a socket
  path, but nothing listens on it.
- There is no key/value server, clerk or replicated service. `kvtest` checks
  clerks that you supply.
- `distlab.models` describes the register's sequential behaviour, but the
  package has no checker that searches a history for a linearization.

## Tests

```
pytest
```