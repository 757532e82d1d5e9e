# /// script
# dependencies = ["jinja2", "httpx"]
# ///
"""
Camerasite: Build a static browse-by-camera site from a works XML feed.

Usage:
    uv run --script camerasite.py FEED_URL OUTPUT_DIR

FEED_URL is an http(s) URL (or a local file path) serving a <works> document.
Outputs index.html, one page per camera make and model, and nomake.html.
"""

import argparse
import re
import sys
import xml.sax
import xml.sax.handler
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import httpx
from jinja2 import Environment

_jinja_env = Environment(autoescape=True)
Template = _jinja_env.from_string

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

THUMBNAIL_LIMIT = 10
GENERIC_MAKE = "(Generic make)"
GENERIC_MODEL = "(Generic model)"

INDEX_PAGE = "index.html"
NO_MAKE_PAGE = "nomake.html"

REQUEST_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024

WORK = "work"
ID = "id"
FILENAME = "filename"
MAKE = "make"
MODEL = "model"
URL = "url"

FIELD_ELEMENTS = {ID, FILENAME, MAKE, MODEL, URL}

# url discriminator attribute value -> Work attribute
URL_KINDS = {
    "small": "thumbnail_url",
    "medium": "medium_url",
    "large": "large_url",
}

_SLUG_RE = re.compile(r"[^A-Za-z0-9]+")
_INT_RE = re.compile(r"[+-]?[0-9]+")
ID_MIN, ID_MAX = -(2 ** 63), 2 ** 63 - 1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CameraSiteError(Exception):
    """Base class for every fatal error of a build run."""


class StructuralXMLError(CameraSiteError):
    """Unbalanced or mismatched tags, or XML the parser cannot read."""


class FieldFormatError(CameraSiteError):
    """A field's text cannot be parsed to its expected type."""


class OrphanFieldError(CameraSiteError):
    """A field element found outside of any <work> element."""


class SourceUnavailableError(CameraSiteError):
    """The feed cannot be opened or read to the end."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

def slugify(name: str) -> str:
    """Collapse every run of non-alphanumerics in name to a single '-'."""
    return _SLUG_RE.sub("-", name)


# Compared by identity; interned instances are shared across the graph.

@dataclass(eq=False)
class Make:
    name: str
    slug: str = ""
    models: list["Model"] = field(default_factory=list, repr=False)
    works: list["Work"] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.slug:
            self.slug = slugify(self.name)

    @property
    def page(self) -> str:
        return f"{self.slug}.html"


@dataclass(eq=False)
class Model:
    name: str
    make: Make = field(repr=False)
    slug: str = ""
    works: list["Work"] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.slug:
            self.slug = slugify(self.name)

    @property
    def page(self) -> str:
        return f"{self.slug}.html"


@dataclass(eq=False)
class Work:
    id: int = -1
    filename: str = ""
    thumbnail_url: str = ""
    medium_url: str = ""
    large_url: str = ""
    make: Optional[Make] = None
    model: Optional[Model] = None


@dataclass
class SiteGraph:
    """Everything the renderer needs, in encounter order."""
    works: list[Work] = field(default_factory=list)
    makes: list[Make] = field(default_factory=list)
    no_make: list[Work] = field(default_factory=list)
    unresolved_models: int = 0

    @property
    def models(self) -> list[Model]:
        return [md for mk in self.makes for md in mk.models]


# ---------------------------------------------------------------------------
# Token stream
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StartTag:
    name: str
    attrs: dict = field(default_factory=dict)


@dataclass(frozen=True)
class EndTag:
    name: str


@dataclass(frozen=True)
class Text:
    data: str


Token = Union[StartTag, EndTag, Text]


def _local_name(qname: str) -> str:
    return qname.rpartition(":")[2]


class _TokenCollector(xml.sax.handler.ContentHandler):
    """Turn SAX callbacks into tokens, merging split character data."""

    def __init__(self):
        super().__init__()
        self._tokens: list[Token] = []
        self._text: list[str] = []

    def _flush_text(self):
        if self._text:
            self._tokens.append(Text("".join(self._text)))
            self._text = []

    def startElement(self, name, attrs):
        self._flush_text()
        self._tokens.append(StartTag(_local_name(name), dict(attrs.items())))

    def endElement(self, name):
        self._flush_text()
        self._tokens.append(EndTag(_local_name(name)))

    def characters(self, content):
        self._text.append(content)

    def endDocument(self):
        self._flush_text()

    def drain(self) -> list[Token]:
        tokens, self._tokens = self._tokens, []
        return tokens


def iter_tokens(chunks: Iterable[bytes]) -> Iterator[Token]:
    """Incrementally parse byte chunks into start/end/text tokens."""
    handler = _TokenCollector()
    parser = xml.sax.make_parser()
    parser.setFeature(xml.sax.handler.feature_external_ges, False)
    parser.setContentHandler(handler)

    fed = False
    try:
        for chunk in chunks:
            fed = fed or bool(chunk)
            parser.feed(chunk)
            yield from handler.drain()
        if not fed:
            raise StructuralXMLError("Feed is empty")
        parser.close()
    except xml.sax.SAXParseException as e:
        raise StructuralXMLError(f"Malformed XML in feed: {e}") from e
    yield from handler.drain()


# ---------------------------------------------------------------------------
# Context stack
# ---------------------------------------------------------------------------

class ContextStack:
    """Open-element path from the document root to the current token.

    Pushing a <url> start tag also raises a one-shot flag for its size
    variant, consumed by the next text token read inside that <url>.
    """

    def __init__(self):
        self._names: list[str] = []
        self._url_kind: Optional[str] = None

    def __len__(self):
        return len(self._names)

    @property
    def current(self) -> Optional[str]:
        return self._names[-1] if self._names else None

    def push(self, name: str, attrs: Optional[dict] = None):
        self._names.append(name)
        if name == URL:
            self._url_kind = None
            for value in (attrs or {}).values():
                if value in URL_KINDS:
                    self._url_kind = value

    def pop(self, name: str) -> str:
        if not self._names:
            raise StructuralXMLError(
                f"Closing element </{name}> with no open element - possibly malformed XML"
            )
        popped = self._names.pop()
        if popped != name:
            raise StructuralXMLError(
                f"Closing element </{name}> does not match opener <{popped}> - possibly malformed XML"
            )
        if popped == URL:
            self._url_kind = None
        return popped

    def take_url_kind(self) -> Optional[str]:
        """Return and clear the pending url variant, if inside a <url>."""
        if self.current != URL:
            return None
        kind, self._url_kind = self._url_kind, None
        return kind


# ---------------------------------------------------------------------------
# Interning
# ---------------------------------------------------------------------------

class MakeRegistry:
    """Canonical Make/Model instances, deduplicated by trimmed name.

    Lookups are linear scans over first-seen order.
    """

    def __init__(self):
        self.makes: list[Make] = []

    def intern_make(self, raw_name: str) -> Make:
        name = raw_name.strip() or GENERIC_MAKE
        for mk in self.makes:
            if mk.name == name:
                return mk
        mk = Make(name)
        self.makes.append(mk)
        return mk

    def intern_model(self, raw_name: str, make: Make) -> Model:
        name = raw_name.strip() or GENERIC_MODEL
        for md in make.models:
            if md.name == name:
                return md
        md = Model(name, make)
        make.models.append(md)
        return md


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------

class WorkGraphBuilder:
    """Single-pass state machine turning feed tokens into a SiteGraph.

    Idle until a <work> opens, InWork until it closes. A model name is held
    pending until the work's make text arrives; the feed lists <model>
    before <make>. A model never followed by a make stays unresolved.
    """

    def __init__(self):
        self.stack = ContextStack()
        self.registry = MakeRegistry()
        self.works: list[Work] = []
        self.no_make: list[Work] = []
        self.unresolved_models = 0

        self._work: Optional[Work] = None
        self._model_pending = False
        self._pending_model_name = ""

    def feed(self, token: Token):
        if isinstance(token, StartTag):
            self._start(token)
        elif isinstance(token, EndTag):
            self._end(token)
        elif isinstance(token, Text):
            self._text(token.data)
        else:
            raise TypeError(f"Unknown token {token!r}")

    def finish(self) -> SiteGraph:
        if self._work is not None:
            raise StructuralXMLError("Feed ended inside an unclosed <work> element")
        if len(self.stack):
            raise StructuralXMLError(
                f"Feed ended with unclosed element <{self.stack.current}>"
            )
        return SiteGraph(
            works=self.works,
            makes=self.registry.makes,
            no_make=self.no_make,
            unresolved_models=self.unresolved_models,
        )

    def _start(self, token: StartTag):
        if token.name in FIELD_ELEMENTS and self._work is None:
            raise OrphanFieldError(
                f"<{token.name}> found outside any <work> - possibly malformed XML"
            )
        if token.name == WORK:
            if self._work is not None:
                raise StructuralXMLError("<work> opened inside another <work>")
            self._work = Work()
        self.stack.push(token.name, token.attrs)

    def _end(self, token: EndTag):
        if self.stack.pop(token.name) == WORK:
            self._finalize()

    def _finalize(self):
        work = self._work
        if self._model_pending:
            self.unresolved_models += 1

        self.works.append(work)
        if work.make is None:
            self.no_make.append(work)
        else:
            work.make.works.append(work)
            if work.model is not None:
                work.model.works.append(work)

        self._work = None
        self._model_pending = False
        self._pending_model_name = ""

    def _text(self, data: str):
        context = self.stack.current
        if context not in FIELD_ELEMENTS:
            return
        work = self._work
        if work is None:
            raise OrphanFieldError(
                f"<{context}> data ({data.strip()!r}) found outside any <work> - possibly malformed XML"
            )

        if context == ID:
            text = data.strip()
            if not _INT_RE.fullmatch(text):
                raise FieldFormatError(f"Work id is not an integer: {text!r}")
            value = int(text)
            if not ID_MIN <= value <= ID_MAX:
                raise FieldFormatError(f"Work id out of range: {text!r}")
            work.id = value

        elif context == FILENAME:
            work.filename = data.strip()

        elif context == MAKE:
            work.make = self.registry.intern_make(data)
            if self._model_pending:
                work.model = self.registry.intern_model(self._pending_model_name, work.make)
                self._model_pending = False
                self._pending_model_name = ""

        elif context == MODEL:
            self._pending_model_name = data.strip()
            self._model_pending = True

        elif context == URL:
            kind = self.stack.take_url_kind()
            if kind:
                setattr(work, URL_KINDS[kind], data.strip())


def build_graph(tokens: Iterable[Token]) -> SiteGraph:
    """Run every token through a fresh builder and return the finished graph."""
    builder = WorkGraphBuilder()
    for token in tokens:
        builder.feed(token)
    return builder.finish()


# ---------------------------------------------------------------------------
# Feed source
# ---------------------------------------------------------------------------

def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def iter_feed_chunks(location: str, client: Optional[httpx.Client] = None) -> Iterator[bytes]:
    """Yield the raw feed body from a URL or a local file, read once."""
    if not _is_url(location):
        try:
            with open(location, "rb") as f:
                for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                    yield chunk
        except OSError as e:
            raise SourceUnavailableError(f"Cannot read feed file {location}: {e}") from e
        return

    own_client = client is None
    if own_client:
        client = httpx.Client(follow_redirects=True, timeout=REQUEST_TIMEOUT)
    try:
        with client.stream("GET", location) as resp:
            resp.raise_for_status()
            yield from resp.iter_bytes()
    except httpx.HTTPError as e:
        raise SourceUnavailableError(f"Error fetching works feed from {location}: {e}") from e
    finally:
        if own_client:
            client.close()


def load_graph(location: str, client: Optional[httpx.Client] = None) -> SiteGraph:
    """Fetch, tokenize and build the graph for one feed location."""
    return build_graph(iter_tokens(iter_feed_chunks(location, client)))


# ---------------------------------------------------------------------------
# HTML rendering
# ---------------------------------------------------------------------------

THUMBNAILS = """\
{% for work in works %}<img src="{{ work.thumbnail_url }}" alt="{{ work.filename }}">
{% endfor %}"""

INDEX_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Welcome to Photos!</title>
<style>nav { margin: 10px; }</style>
</head>
<body>
<header>
<h1>Welcome to Photos!</h1>
<nav><select onchange="if (this.value) window.location.href=this.value"><option value="">-- select a camera make</option>{% for mk in makes %}<option value="{{ mk.page }}">{{ mk.name }}</option>{% endfor %}{% if has_no_make %}<option value="{{ no_make_page }}">(no make/generic)</option>{% endif %}</select></nav>
</header>
""" + THUMBNAILS + """
</body>
</html>
""")

MAKE_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>All photos taken with a {{ make.name }}</title>
<style>nav { margin: 10px; }</style>
</head>
<body>
<header>
<h1>All photos taken with a <i>{{ make.name }}</i> camera</h1>
<nav><a href="{{ index_page }}">back to homepage</a> | <select onchange="if (this.value) window.location.href=this.value"><option value="">-- select a camera model</option>{% for md in make.models %}<option value="{{ md.page }}">{{ md.name }}</option>{% endfor %}</select></nav>
</header>
""" + THUMBNAILS + """
</body>
</html>
""")

MODEL_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>All photos taken with a {{ model.name }}</title>
<style>nav { margin: 10px; }</style>
</head>
<body>
<header>
<h1>All photos taken with a <i>{{ model.name }}</i> camera</h1>
<nav><a href="{{ index_page }}">back to homepage</a> | <a href="{{ model.make.page }}">back to {{ model.make.name }}</a></nav>
</header>
""" + THUMBNAILS + """
</body>
</html>
""")

NO_MAKE_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Generic Photographic Works</title>
<style>nav { margin: 10px; }</style>
</head>
<body>
<header>
<h1>Generic Photos</h1>
<nav><a href="{{ index_page }}">back to homepage</a></nav>
</header>
""" + THUMBNAILS + """
</body>
</html>
""")


def render_site(graph: SiteGraph) -> dict[str, str]:
    """Render every page in memory, keyed by output filename.

    Later pages win on a slug collision.
    """
    pages: dict[str, str] = {}

    pages[INDEX_PAGE] = INDEX_TEMPLATE.render(
        makes=graph.makes,
        has_no_make=bool(graph.no_make),
        no_make_page=NO_MAKE_PAGE,
        works=graph.works[:THUMBNAIL_LIMIT],
    )

    for mk in graph.makes:
        pages[mk.page] = MAKE_TEMPLATE.render(
            make=mk,
            index_page=INDEX_PAGE,
            works=mk.works[:THUMBNAIL_LIMIT],
        )

    if graph.no_make:
        pages[NO_MAKE_PAGE] = NO_MAKE_TEMPLATE.render(
            index_page=INDEX_PAGE,
            works=graph.no_make[:THUMBNAIL_LIMIT],
        )

    for md in graph.models:
        pages[md.page] = MODEL_TEMPLATE.render(
            model=md,
            index_page=INDEX_PAGE,
            works=md.works[:THUMBNAIL_LIMIT],
        )

    return pages


def write_site(pages: dict[str, str], output_dir: Path):
    """Write rendered pages into output_dir, creating it if needed."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, content in pages.items():
        (output_dir / name).write_text(content, encoding="utf-8")
        print(f"  Wrote {name} ({content.count('<img ')} thumbnails)")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def describe_graph(graph: SiteGraph) -> str:
    """One-line summary of the parsed graph."""
    return (
        f"{len(graph.works)} works, {len(graph.makes)} makes, "
        f"{len(graph.models)} models, {len(graph.no_make)} without a make, "
        f"{graph.unresolved_models} with an unresolved model"
    )


def parse_args(argv=None) -> argparse.Namespace:
    """Parse the feed location and output directory."""
    parser = argparse.ArgumentParser(
        description="Build a static browse-by-camera site from a works XML feed"
    )
    parser.add_argument("feed", help="works feed URL (or local XML file)")
    parser.add_argument("output_dir", type=Path, help="directory to write the HTML pages to")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        print(f"Step 1: Reading works feed from {args.feed}...")
        graph = load_graph(args.feed)
        print(f"  Parsed {describe_graph(graph)}")

        print("Step 2: Rendering pages...")
        pages = render_site(graph)

        print(f"Step 3: Writing {len(pages)} pages to {args.output_dir}/...")
        write_site(pages, args.output_dir)
    except CameraSiteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: cannot write site to {args.output_dir}: {e}", file=sys.stderr)
        return 1

    print(f"\nDone! Site written to {args.output_dir}/")
    print(f"Run: python3 -m http.server -d {args.output_dir} 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
