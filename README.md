# volokit

Tools for RPC projects described by IDL files (Thrift and Protobuf), plus
building blocks for a gRPC client:

- `volokit.model` and `volokit.util`: the `volo.yml` configuration, which
  lists IDL files per named entry, either local or pinned to a git commit;
- `volokit.cli`: the `volo` command for adding IDL files to that
  configuration and re-locking git-hosted IDL files to newer commits;
- `volokit.grpc.compression`: gzip/zlib compression and
  `grpc-encoding` / `grpc-accept-encoding` negotiation;
- `volokit.grpc.timeout`: `grpc-timeout` header parsing and a timeout layer;
- `volokit.grpc.layers`: user-agent and origin layers;
- `volokit.grpc.config` and `volokit.grpc.client`: per-call configuration,
  call options and a client builder;
- `volokit.grpc.status`: gRPC status codes and the `Status` exception.

Install with `pip install .`; the only runtime dependency is PyYAML.

## The `volo` command

The configuration lives in `volo.yml` in the current directory and is created
when missing.

Add a local IDL file to the default entry:

    volo idl add ./idl/echo.thrift

Add an IDL file from a git repository, pinned to the latest commit of a ref
(`HEAD` when `-r` is not given), with include directories (`-i` may be
repeated) and a custom output filename:

    volo idl add -g git@example.com:team/idl.git -r main -i proto -f echo_gen.rs proto/echo.proto

`-r` requires `-g`. The output filename must not contain `/` or `\`, must
match the filename of the entry it is added to, and must not be used by
another entry. A new entry takes its protocol from the IDL file extension
(`.thrift` or `.proto`).

Work on a named entry instead of `default` (`-n` is accepted before or after
`idl`):

    volo idl -n backend add ./idl/backend.thrift

Re-lock git sources to the newest commit of their ref, either all of them or
only the listed repositories:

    volo idl update
    volo idl update git@example.com:team/idl.git

`-v` may be repeated for more detailed logging. On failure the error is logged
and `volo` exits with status 1.

The git operations run the `git` program, which must be on `PATH`.

## Library use

Reading and editing the configuration:

```python
from volokit.model import Config
from volokit.util import with_config

def show(config: Config) -> None:
    for name, entry in config.entries.items():
        print(name, entry.protocol, entry.filename, [str(idl.path) for idl in entry.idls])

with_config(show, "volo.yml")
```

`with_config` reads the file, passes the `Config` to the function, writes the
(possibly changed) configuration back and returns the function's result.
`Config`, `Entry` and `Idl` convert to and from plain dictionaries with
`to_dict` / `from_dict`; `Idl.protocol()` raises `ValueError` for an unknown
file extension.

Compression round trip:

```python
from volokit.grpc.compression import CompressionEncoding, compress, decompress

encoding = CompressionEncoding.gzip(1)
packed = compress(encoding, b"test compression")
assert decompress(encoding, packed) == b"test compression"
```

Only gzip and zlib encodings created with a level produce compressed output;
`decompress` raises `OSError` on corrupt data. `from_encoding_header` raises
`Status` (`Code.UNIMPLEMENTED`) for an encoding that is not enabled.

Parsing a `grpc-timeout` header (the result is in seconds):

```python
from volokit.grpc.timeout import parse_grpc_timeout

print(parse_grpc_timeout({"grpc-timeout": "42S"}))  # 42.0
```

A missing header gives `None`; a malformed one raises `InvalidTimeoutHeader`.
`GrpcTimeout` runs an inner service under the shorter of the client's and the
server's timeout and raises `Status` (`Code.DEADLINE_EXCEEDED`) when it runs
out.

Building a client around your own transport, which is any object with an
`async call(info, request)` method:

```python
from volokit.grpc.client import ClientBuilder

client = (
    ClientBuilder("hello")
    .caller_name("example")
    .read_timeout(5.0)
    .address(("127.0.0.1", 8080))
    .build(transport)
)
info = client.make_call_info("/hello.HelloService/Hello")
response = await client.call(info, request)
```

Layers are objects with a `layer(service)` method or callables taking the
service to wrap; a call passes through outer layers, then inner layers, then
the transport. `Client.with_opt(CallOpt(...))` returns a client whose calls
first apply the options.

## What this package does not do

- It does not generate code from IDL files; it only manages the configuration
  that lists them.
- It has no HTTP/2 transport, server, service discovery or load balancing; the
  client builder wraps a transport that you supply.
- It does not frame or decode gRPC message streams; only compression and
  header negotiation are provided.