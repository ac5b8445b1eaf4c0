# memkit

Tools for testing a memcached server from Python. The package has no
dependencies outside the standard library and runs on POSIX systems.

## Modules

- `memkit.protocol`: the binary protocol. It has the `Magic`, `Status`
  and `Command` enumerations. `RequestHeader` and `ResponseHeader` are
  dataclasses for the fixed 24-byte header. Their `pack()` method encodes the
  header and their `unpack()` class method decodes it. Multibyte fields are
  big-endian. `is_quiet(cmd)` tells whether a command is a quiet variant.
  Headers that are malformed or have values out of range raise
  `ProtocolError`, a subclass of `ValueError`.
- `memkit.packets`: builders for complete request packets that return
  `bytes`. They are `ext_command`, `raw_command`, `storage_command`,
  `flush_command`, `touch_command` and `arithmetic_command`. Every request
  carries the opaque value `DEFAULT_OPAQUE` (`0xDEADBEEF`).
  `validate_response_header(header, cmd, status)` checks that a
  `ResponseHeader` is a well-formed reply to `cmd` with the given status. It
  raises `ProtocolError` at the first mismatch.
- `memkit.launcher`: `start_server(binary, daemon, timeout)` starts a server
  binary (by default `./memcached-debug`) on an ephemeral TCP port with UDP
  switched off. It passes the server a port file through the
  `MEMCACHED_PORT_FILENAME` environment variable and waits until that file
  names the port. It returns a `ServerProcess` with `pid`, `port`, `stop()`
  and `alive()`. When the server is not a daemon it runs under
  `memkit.timedrun`. `build_server_argv`, `read_port_file` and
  `read_pid_file` are available separately. Failures raise
  `ServerLaunchError`.
- `memkit.util` provides strict decimal parsing: `safe_strtoul`,
  `safe_strtoull`, `safe_strtol`, `safe_strtoll` and `safe_strtod`. Each
  returns the number or raises `ValueError` when the input is empty,
  non-numeric or out of range. Leading whitespace is allowed, and so is
  whitespace after the number. The module also has:
  - `uriencode(src, limit)`, which percent-encodes everything except ASCII
    letters, digits and `-._~`;
  - `vperror(fmt, *args)`, which prints a formatted message followed by the
    current OS error to stderr;
  - `htonll` and `ntohll`, which swap byte order for 64-bit values.
- `memkit.timedrun` is the module behind the `memkit-timedrun` command.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from memkit.packets import storage_command, validate_response_header
from memkit.protocol import Command, RequestHeader, ResponseHeader, Status

packet = storage_command(Command.SET, b"greeting", b"hello", 0, 0)
request = RequestHeader.unpack(packet)
assert request.keylen == 8 and request.extlen == 8

reply = ResponseHeader(opcode=Command.SET, opaque=0xDEADBEEF, cas=1).pack()
validate_response_header(ResponseHeader.unpack(reply), Command.SET, Status.SUCCESS)
```

## Running a command with a time limit

`memkit-timedrun SECONDS COMMAND [ARGS...]` starts the command and waits for
it to finish. The time limit must be between 1 and 1799 seconds.

When the limit runs out, or when the runner receives SIGHUP, SIGINT, SIGTERM
or SIGPIPE, it sends the child that same signal. If the child is still
running five seconds later, the runner sends SIGTERM. After five more
seconds it sends SIGKILL.

The exit status is the command's own. If the command was killed by a signal,
the exit status is 128 plus the signal number.

```
memkit-timedrun 600 ./memcached-debug -p 0 -U 0
```

## What this package does not do

memkit is not a cache server. It also has no network client. The packet
builders produce bytes and the header classes decode bytes. Opening the
socket, sending requests and reading replies are left to your code, for
example with the standard `socket` module. The package does not hold
server-side item or statistics structures either.