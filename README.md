# humalite

Small building blocks for HTTP APIs, plus a helper for recording terminal
demos.

- **`humalite.errors`** – problem-details errors in the style of RFC 9457
  (`ErrorModel`, `ErrorDetail`, `StatusError`), ready-made constructors such as
  `error_404_not_found`, and `error_with_headers` to attach response headers to
  an error.
- **`humalite.formats`** – `Format` pairs for writing and reading request and
  response bodies, with JSON and CBOR built in (`default_formats()`).
- **`humalite.formdata`** – reading uploaded multipart files into `FormFile`
  objects and checking their media types with `MimeTypeValidator`.
- **`humalite.recorder`** – a script runner that types a shell script into an
  `asciinema rec` session.

## Installation

```
pip install humalite
```

## Errors

```python
from humalite.errors import ErrorDetail, error_400_bad_request

err = error_400_bad_request(
    "validation failed",
    ErrorDetail(message="expected boolean", location="body.active", value=5),
)
assert err.status == 400
assert err.title == "Bad Request"
assert str(err.errors[0]) == "expected boolean (body.active: 5)"
assert err.content_type("application/json") == "application/problem+json"
```

Every error is an exception, so handlers can simply `raise` it.

- `ErrorModel.add(err)` appends an error; anything with an `error_detail()`
  method contributes its own `ErrorDetail`, other exceptions become a detail
  holding their message.
- `ErrorModel.content_type(ct)` maps `application/json` and `application/cbor`
  to their `application/problem+...` variants and leaves others unchanged.
- `to_dict()` on `ErrorModel` and `ErrorDetail` gives a serializable form
  without empty fields.
- `new_error(status, msg, *errors)` builds an error through the current
  factory; the title defaults to the status's reason phrase.
  `set_error_factory(factory)` installs your own factory and returns the
  previous one; `set_error_factory(None)` restores the default.
- `status_304_not_modified()` and `error_400_bad_request` through
  `error_504_gateway_timeout` are shortcuts for the common status codes.
- `error_with_headers(err, headers)` wraps an error in `ErrorWithHeaders`.
  Header names are canonicalised (`my-header` becomes `My-Header`), and if the
  error, or anything it was raised from, already carries headers, the new ones
  are merged into them.

## Formats

```python
import io
from humalite.formats import default_formats

formats = default_formats()
buf = io.BytesIO()
formats["application/cbor"].marshal(buf, {"hello": "world"})
assert formats["cbor"].unmarshal(buf.getvalue()) == {"hello": "world"}
```

`default_formats()` returns a fresh dict keyed by `application/json`, `json`,
`application/cbor` and `cbor`.

- `json_marshal` writes compact JSON followed by a newline, escapes `<`, `>`,
  `&`, U+2028 and U+2029, and raises `ValueError` for NaN or infinity.
- `cbor_marshal` writes canonical CBOR with datetimes as tagged Unix
  timestamps. `cbor_unmarshal` raises `ValueError` when data follows the first
  item.
- Objects with a `to_dict()` method (such as the error models) are serialized
  through it by both encoders.

## Form files

```python
from humalite.formdata import Encoding, FileHeader, read_single_file

upload = FileHeader(filename="a.png", content=b"\x89PNG\r\n\x1a\n...")
form_file = read_single_file([upload], "avatar", True, Encoding("image/*"))
assert form_file.content_type == "image/png"
assert form_file.is_set and form_file.size == len(upload.content)
```

- `read_single_file` raises `ErrorDetail` when a required file is missing, when
  more than one file arrives, or when the media type is not accepted; a
  missing optional file gives an unset `FormFile`.
- `read_multiple_files` returns a list of `FormFile` or raises `FormDataError`,
  whose `errors` lists every failed file (locations like `key[1]`).
- `MimeTypeValidator.from_encoding` splits a comma-separated content type
  list; `text/plain` or `application/octet-stream` in it accepts anything, and
  `type/*` accepts any subtype. Without a `Content-Type` header on the part, the
  type is sniffed with `detect_content_type`.

## Recording terminal sessions

Write a script of shell lines. Each line is typed into the recording one
character at a time. Lines beginning with `#$` are control commands:

- `#$ delay <ms>` sets the pause between typed characters (default 40 ms).
- `#$ wait <ms>` sets the pause after each line or command (default 100 ms).

Then run:

```
humalite-record demo.sh demo.cast
```

Arguments after the script are passed to `asciinema rec`; the `asciinema`
executable must be on your `PATH`. When no output file is given (no arguments,
or the first one starts with `-`), asciinema asks what to do with the
recording: press Enter to answer, or Ctrl-C to cancel. An unknown control
command or a bad argument is reported with its line number.

The same can be done from Python with `Script.from_file(path, args)`, then
`start()`, `execute()` and `stop()`.

## What this package does not do

There is no HTTP server, router, request handling, OpenAPI document or
validation of request bodies here. The errors, formats and form-file helpers
are meant to be used from whatever web framework you already run.