#!/usr/bin/env python3
"""
A single-file swear jar: log words, watch the counters go up.
"""

import json
import os
import re
import secrets
import sqlite3
import uuid
import zlib
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from functools import wraps
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from urllib.parse import quote, unquote
from zoneinfo import ZoneInfo

import click
from flask import (
    Flask,
    flash,
    g,
    jsonify,
    make_response,
    redirect,
    render_template_string,
    request,
    url_for,
)
from itsdangerous import BadData
from itsdangerous.encoding import base64_decode, base64_encode
from werkzeug.middleware.proxy_fix import ProxyFix

################################################################################
# Imports & constants
################################################################################

ROOT = Path(__file__).parent
DB_FILE = Path(os.environ.get("SWEARJAR_DATABASE", str(ROOT / "swearjar.sqlite3")))

SECRET_FILE = ROOT / ".secret_key"
SECRET_KEY = os.environ.get("SWEARJAR_SECRET_KEY") or (
    SECRET_FILE.read_text().strip() if SECRET_FILE.exists() else secrets.token_hex(32)
)
if not os.environ.get("SWEARJAR_SECRET_KEY") and not SECRET_FILE.exists():
    try:
        SECRET_FILE.write_text(SECRET_KEY)
    except OSError:
        pass

STORE_BACKEND = os.environ.get("SWEARJAR_STORE", "sqlite").lower()
TIMEZONE = os.environ.get("SWEARJAR_TZ", "UTC")
COOKIE_SECURE = os.environ.get("SWEARJAR_COOKIE_SECURE", "0") == "1"
LOG_LEVEL = os.environ.get("SWEARJAR_LOG_LEVEL", "INFO").upper()

IDENTITY_COOKIE = "username"
IDENTITY_MAX_AGE = 60 * 60 * 24 * 365  # one year
DEVICE_COOKIE = "device"
DEFAULT_DEVICE = "default"
SHARE_PARAM = "s"
MAX_STATE_BYTES = 2 * 1024 * 1024  # inflated snapshot cap

DAY_MS = 24 * 60 * 60 * 1000
TOP_WORDS = 5
TREND_DAYS = 7
RECENT_LIMIT = 10
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DEVICE_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")
API_ROOTS = {"login", "logout", "entries", "stats"}
THEME_COLOR = "#e0a458"

try:
    __version__ = version("swearjar")
except PackageNotFoundError:
    __version__ = "0.1.0-dev"


################################################################################
# App
################################################################################
app = Flask(__name__)
app.config.update(
    SECRET_KEY=SECRET_KEY,
    DATABASE=str(DB_FILE),
    STORE=STORE_BACKEND,
    TIMEZONE=TIMEZONE,
    COOKIE_SECURE=COOKIE_SECURE,
)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
app.logger.setLevel(LOG_LEVEL)


###############################################################################
# Errors
###############################################################################
class JarError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status = 500
    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthenticated(JarError):
    status = 401
    message = "Not logged in"


class ValidationError(JarError):
    status = 400
    message = "Invalid request"


class NotFoundError(JarError):
    status = 404
    message = "Entry not found"


class StoreError(JarError):
    """The key/value store could not be read or written."""

    status = 500
    message = "Storage failure"


###############################################################################
# Database helpers
###############################################################################
SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""


def get_db():
    if "db" not in g:
        g.db = sqlite3.connect(app.config["DATABASE"])
        g.db.row_factory = sqlite3.Row
        g.db.executescript(SCHEMA)
    return g.db


@app.teardown_appcontext
def close_db(error=None):
    g.pop("store", None)
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()


# -------------------------------------------------------------------------
# Key/value stores
# -------------------------------------------------------------------------
@contextmanager
def _store_call(op: str, key: str):
    try:
        yield
    except sqlite3.Error as exc:
        app.logger.warning("store %s failed for %s: %s", op, key, exc)
        raise StoreError(f"{op} failed for {key}") from exc


class SqliteStore:
    """`get` / `set` / `delete` over the ``kv`` table of one connection."""

    def __init__(self, db):
        self.db = db

    def get(self, key: str) -> str | None:
        with _store_call("get", key):
            row = self.db.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with _store_call("set", key):
            self.db.execute(
                "INSERT INTO kv (key,value) VALUES (?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
            self.db.commit()

    def delete(self, key: str) -> None:
        with _store_call("delete", key):
            self.db.execute("DELETE FROM kv WHERE key=?", (key,))
            self.db.commit()


class MemoryStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


def get_store():
    """Return the store for the current app context, opening it on first use."""
    if "store" not in g:
        if app.config["STORE"] == "memory":
            g.store = app.extensions.setdefault("swearjar_memory", MemoryStore())
        else:
            g.store = SqliteStore(get_db())
    return g.store


# -------------------------------------------------------------------------
# Time helpers
# -------------------------------------------------------------------------
def utc_now() -> datetime:
    """Return an *aware* datetime in UTC."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current time in the configured timezone."""
    return utc_now().astimezone(ZoneInfo(app.config["TIMEZONE"]))


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


###############################################################################
# Identity
###############################################################################
def normalize_username(raw) -> str:
    return raw.strip().lower() if isinstance(raw, str) else ""


def current_identity() -> str | None:
    """The username cookie as-is. Nobody checks it."""
    value = (request.cookies.get(IDENTITY_COOKIE) or "").strip()
    return value or None


def require_identity() -> str:
    identity = current_identity()
    if identity is None:
        raise Unauthenticated()
    return identity


###############################################################################
# Entry log
###############################################################################
def entries_key(identity: str) -> str:
    return f"swearjar:{identity}:entries"


def local_cache_key(device: str) -> str:
    # different prefix: no username can map onto a device cache
    return f"swearjar-local:{device}:entries"


def normalize_word(raw) -> str:
    return raw.strip().lower() if isinstance(raw, str) else ""


def new_entry(word: str, now: datetime) -> dict:
    return {
        "id": uuid.uuid4().hex,
        "word": word,
        "timestamp": to_ms(now),
        "date": now.date().isoformat(),
    }


def valid_entry(obj) -> bool:
    return (
        isinstance(obj, dict)
        and isinstance(obj.get("id"), str)
        and isinstance(obj.get("word"), str)
        and isinstance(obj.get("timestamp"), int)
        and not isinstance(obj.get("timestamp"), bool)
        and isinstance(obj.get("date"), str)
        and bool(DATE_RE.match(obj["date"]))
    )


def dump_log(entries: list[dict]) -> str:
    return json.dumps(entries, separators=(",", ":"), ensure_ascii=False)


def parse_log(raw: str) -> list[dict] | None:
    """Parse a stored blob; ``None`` when it is not a list of entries."""
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, list) or not all(valid_entry(e) for e in data):
        return None
    return data


class StoreLog:
    """One identity's log, kept as a JSON blob under a namespaced key."""

    def __init__(self, store, identity: str):
        self.store = store
        self.key = entries_key(identity)

    def load(self) -> list[dict] | None:
        raw = self.store.get(self.key)
        if not raw:
            return None
        entries = parse_log(raw)
        if entries is None:
            raise StoreError(f"unreadable log under {self.key}")
        return entries

    def save(self, entries: list[dict]) -> None:
        self.store.set(self.key, dump_log(entries))

    def clear(self) -> None:
        self.store.delete(self.key)


class LocalLog:
    """
    The device-only log.

    State lives in two places: the device cache (one key per device) and
    the shareable URL snapshot in ``self.shared``.  A non-empty snapshot
    wins over the cache on load; every write goes to both.
    """

    def __init__(self, cache, shared: str = "", device: str = DEFAULT_DEVICE):
        self.cache = cache
        self.shared = shared or ""
        self.device = device
        self.key = local_cache_key(device)

    def load(self) -> list[dict] | None:
        entries = decode_state(self.shared)
        if entries:
            return entries
        raw = self.cache.get(self.key)
        if not raw:
            return None
        return parse_log(raw)

    def save(self, entries: list[dict]) -> None:
        self.cache.set(self.key, dump_log(entries))
        self.shared = encode_state(entries)

    def clear(self) -> None:
        self.cache.set(self.key, "[]")
        self.shared = ""


def list_entries(log) -> list[dict]:
    return log.load() or []


def append_entry(log, raw_word, *, now: datetime | None = None) -> tuple[dict, list[dict]]:
    """Prepend a new entry and persist the whole log."""
    word = normalize_word(raw_word)
    if not word:
        raise ValidationError("Word is required")
    entry = new_entry(word, now or local_now())
    entries = [entry] + list_entries(log)
    log.save(entries)
    return entry, entries


def remove_entry(log, entry_id) -> list[dict]:
    """Drop the first entry with *entry_id*; nothing is written on a miss."""
    if not isinstance(entry_id, str) or not entry_id.strip():
        raise ValidationError("Entry ID is required")
    entries = log.load()
    if entries is None:
        raise NotFoundError()
    for idx, entry in enumerate(entries):
        if entry["id"] == entry_id:
            break
    else:
        raise NotFoundError()
    remaining = entries[:idx] + entries[idx + 1 :]
    log.save(remaining)
    return remaining


def clear_entries(log) -> None:
    log.clear()


###############################################################################
# Statistics
###############################################################################
def aggregate(entries: list[dict], now: datetime | None = None) -> dict:
    """
    Counters over a log.  Day boundaries come from *now*'s own timezone
    (a naive *now* is read as local time).
    """
    now = now or local_now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_start = to_ms(midnight)
    today_end = to_ms(midnight + timedelta(days=1))
    week_start = today_start - 7 * DAY_MS
    month_start = today_start - 30 * DAY_MS

    stats = {
        "total": len(entries),
        "today": 0,
        "thisWeek": 0,
        "thisMonth": 0,
        "byWord": {},
        "byDate": {},
    }
    for entry in entries:
        ts = entry["timestamp"]
        if today_start <= ts < today_end:
            stats["today"] += 1
        if ts >= week_start:
            stats["thisWeek"] += 1
        if ts >= month_start:
            stats["thisMonth"] += 1
        stats["byWord"][entry["word"]] = stats["byWord"].get(entry["word"], 0) + 1
        stats["byDate"][entry["date"]] = stats["byDate"].get(entry["date"], 0) + 1
    return stats


def top_words(stats: dict, limit: int = TOP_WORDS) -> list[dict]:
    ranked = sorted(stats["byWord"].items(), key=lambda kv: kv[1], reverse=True)
    return [{"word": w, "count": c} for w, c in ranked[:limit]]


def _day_label(day: str) -> str:
    try:
        d = datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        return day
    return f"{d:%b} {d.day}"


def recent_trend(stats: dict, days: int = TREND_DAYS) -> list[dict]:
    """Last *days* dates that have entries, oldest first. Gaps stay gaps."""
    recent = sorted(stats["byDate"].items())[-days:] if days > 0 else []
    return [{"date": d, "label": _day_label(d), "count": c} for d, c in recent]


def stats_snapshot(entries: list[dict], now: datetime | None = None) -> dict:
    """Compose a reusable stats payload for HTML and JSON views."""
    stats = aggregate(entries, now)
    return {
        "stats": stats,
        "top_words": top_words(stats),
        "trend": recent_trend(stats),
    }


###############################################################################
# Shareable state
###############################################################################
def encode_state(entries: list[dict]) -> str:
    """JSON → zlib → url-safe base64 → percent-escaped.  ``[]`` is ``""``."""
    if not entries:
        return ""
    packed = zlib.compress(dump_log(entries).encode("utf-8"), 9)
    return quote(base64_encode(packed).decode("ascii"), safe="")


def decode_state(text) -> list[dict]:
    """Inverse of :func:`encode_state`.  Anything unreadable is an empty log."""
    if not text:
        return []
    try:
        packed = base64_decode(unquote(text))
        inflater = zlib.decompressobj()
        raw = inflater.decompress(packed, MAX_STATE_BYTES)
        if inflater.unconsumed_tail or not inflater.eof:
            return []  # oversized or truncated
        data = json.loads(raw.decode("utf-8"))
    except (BadData, ValueError, TypeError, zlib.error, RecursionError):
        return []
    if not isinstance(data, list) or not all(valid_entry(e) for e in data):
        return []
    return data


def load_local_state(cache, shared: str = "", device: str = DEFAULT_DEVICE) -> list[dict]:
    return list_entries(LocalLog(cache, shared, device))


def share_url(entries: list[dict], base: str) -> str:
    return f"{base.rstrip('/')}/local?{SHARE_PARAM}={encode_state(entries)}"


###############################################################################
# JSON API
###############################################################################
def json_api(failure: str):
    """
    Turn JarErrors into ``{"error": ...}`` bodies.  Anything else is logged
    and answered with the generic *failure* message.
    """

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except Exception as exc:
                if isinstance(exc, JarError) and exc.status < 500:
                    return {"error": exc.message}, exc.status
                app.logger.exception(failure)
                return {"error": failure}, 500

        return wrapped

    return decorator


def _request_data() -> tuple[dict, bool]:
    """Body as a dict, plus whether it came from an HTML form."""
    data = request.get_json(silent=True)
    if data is None and request.form:
        return request.form, True
    return (data if isinstance(data, dict) else {}), False


@app.route("/login", methods=["GET", "POST"])
@json_api("Failed to set username")
def login():
    if request.method == "GET":
        return {"username": current_identity()}

    data, from_form = _request_data()
    username = normalize_username(data.get("username"))
    if not username:
        if from_form:
            flash("Username is required")
            return redirect(url_for("signin"), 303)
        raise ValidationError("Username is required")

    resp = redirect(url_for("index"), 303) if from_form else jsonify(username=username)
    resp.set_cookie(
        IDENTITY_COOKIE,
        username,
        max_age=IDENTITY_MAX_AGE,
        httponly=True,
        samesite="Lax",
        secure=app.config["COOKIE_SECURE"],
    )
    app.logger.info("login as %s", username)
    return resp


@app.route("/logout", methods=["POST"])
@json_api("Failed to log out")
def logout():
    resp = jsonify(success=True)
    resp.delete_cookie(IDENTITY_COOKIE)
    return resp


@app.route("/entries", methods=["GET"])
@json_api("Failed to fetch entries")
def get_entries():
    identity = require_identity()
    return {"entries": list_entries(StoreLog(get_store(), identity))}


@app.route("/entries", methods=["POST"])
@json_api("Failed to add entry")
def add_entry():
    identity = require_identity()
    data, _ = _request_data()
    entry, entries = append_entry(StoreLog(get_store(), identity), data.get("word"))
    return {"entry": entry, "entries": entries}


@app.route("/entries", methods=["DELETE"])
@json_api("Failed to clear entries")
def clear_all():
    identity = require_identity()
    clear_entries(StoreLog(get_store(), identity))
    app.logger.info("cleared entries for %s", identity)
    return {"success": True}


@app.route("/entries/<path:entry_id>", methods=["DELETE"])
@json_api("Failed to delete entry")
def delete_entry(entry_id):
    identity = require_identity()
    if not entry_id.strip():
        raise ValidationError("Entry ID is required")
    entries = remove_entry(StoreLog(get_store(), identity), entry_id)
    return {"success": True, "entries": entries}


@app.route("/stats")
@json_api("Failed to compute stats")
def stats():
    identity = require_identity()
    return stats_snapshot(list_entries(StoreLog(get_store(), identity)))


###############################################################################
# Templates + Views
###############################################################################
def wrap(body: str) -> str:
    """Glue prolog + page-specific body + epilog."""
    return TEMPL_PROLOG + body + TEMPL_EPILOG


app.jinja_env.globals.update(theme_color=THEME_COLOR, version=__version__)


TEMPL_PROLOG = """
<!doctype html>
<html lang="en">
<title>{{ title or 'Swear Jar' }}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta charset="utf-8">
<style>
html{font-size:62.5%;font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,"Helvetica Neue",Arial,sans-serif}
body{font-size:1.8rem;line-height:1.5;max-width:60rem;margin:auto;color:#c9c9c9;background:#222;padding:13px}
h1,h2,h3{line-height:1.1;font-weight:700;margin:2rem 0 1rem}
a{color:#fff}
button,.button{display:inline-block;padding:5px 10px;background:#fff;color:#222;border:1px solid #fff;border-radius:2px;cursor:pointer;font-size:.85em}
button.ghost{background:transparent;color:#aaa;border-color:#555}
input{color:#c9c9c9;padding:6px 10px;background:#4a4a4a;border:1px solid #4a4a4a;border-radius:4px;box-sizing:border-box}
.cards{display:grid;grid-template-columns:repeat(auto-fit,minmax(12rem,1fr));gap:1rem;margin:1.5rem 0}
.card{padding:1rem;border:1px solid #444;border-radius:.4rem;background:#2a2a2a}
.card .label{font-size:.9em;color:#888}
.card .value{font-size:2.1rem;line-height:1.2}
.bar-row{display:flex;align-items:center;gap:.6rem;font-size:.9em;margin:.3rem 0}
.bar-row .name{flex:0 0 7rem;overflow:hidden;text-overflow:ellipsis;white-space:nowrap}
.bar-track{flex:1;height:.9rem;background:#333;border-radius:.2rem}
.bar-fill{display:block;height:100%;background:{{ theme_color }}}
.empty{color:#888;padding:2rem 0;text-align:center}
.entry{display:flex;justify-content:space-between;align-items:center;border:1px solid #444;border-radius:.4rem;padding:.5rem .8rem;margin:.4rem 0}
.pill{display:inline-block;padding:.1em .6em;background:#444;color:#fff;border-radius:1em;font-size:.85em}
</style>
<body>
<div style="margin:2rem auto;">
  <header style="display:flex;justify-content:space-between;align-items:baseline;flex-wrap:wrap;gap:.5rem;">
    <h1 style="margin:0;"><a href="{{ url_for('index') }}" style="color:{{ theme_color }};text-decoration:none;">Swear Jar</a>
      {% if username %}<span class="pill">{{ username }}</span>{% endif %}
    </h1>
    <small style="color:#888;">Track your swearing habits and see your progress over time</small>
  </header>
  {% with msgs = get_flashed_messages() %}
  {% if msgs %}
    <div role="status" style="margin:1rem 0;padding:.75rem 1rem;background:#323232;border-radius:.4rem;">
      {{ msgs|join(' · ') }}
    </div>
  {% endif %}
  {% endwith %}
  <main>
{% macro counters(stats) -%}
  <section class="cards">
    <div class="card"><div class="label">Total</div><div class="value">{{ stats.total }}</div><small>All time</small></div>
    <div class="card"><div class="label">Today</div><div class="value">{{ stats.today }}</div><small>Since midnight</small></div>
    <div class="card"><div class="label">This Week</div><div class="value">{{ stats.thisWeek }}</div><small>Last 7 days</small></div>
    <div class="card"><div class="label">This Month</div><div class="value">{{ stats.thisMonth }}</div><small>Last 30 days</small></div>
  </section>
{%- endmacro %}
{% macro bars(rows, key, heading) -%}
  <section class="card" style="margin-bottom:1rem;">
    <h3 style="margin-top:0;">{{ heading }}</h3>
    {% if rows %}
      {% set peak = rows|map(attribute='count')|max %}
      {% for r in rows %}
        <div class="bar-row">
          <span class="name">{{ r[key] }}</span>
          <span class="bar-track"><span class="bar-fill" style="width:{{ '%.1f' % (100 * r.count / peak) }}%;"></span></span>
          <span>{{ r.count }}</span>
        </div>
      {% endfor %}
    {% else %}
      <div class="empty">No data yet</div>
    {% endif %}
  </section>
{%- endmacro %}
"""

TEMPL_EPILOG = """
  </main>
  <footer style="margin-top:2rem;padding-top:1rem;font-size:.8em;color:#888;border-top:1px solid #444;">
    swearjar v{{ version }}
  </footer>
</div>
</body>
</html>
"""


@app.route("/")
def index():
    identity = current_identity()
    if identity is None:
        return redirect(url_for("signin"))

    entries = list_entries(StoreLog(get_store(), identity))
    snapshot = stats_snapshot(entries)
    return render_template_string(
        TEMPL_BOARD,
        entries=entries,
        recent=entries[:RECENT_LIMIT],
        share=share_url(entries, request.host_url) if entries else None,
        username=identity,
        **snapshot,
    )


TEMPL_BOARD = wrap("""
<section class="card" style="margin-top:1.5rem;">
  <form id="add-form" style="display:flex;gap:.6rem;align-items:flex-end;margin:0;">
    <div style="flex:1;">
      <label for="word" style="display:block;font-size:.85em;">Swear word</label>
      <input id="word" name="word" placeholder="Enter a word..." autocomplete="off" style="width:100%;margin:0;">
    </div>
    <button type="submit">+ Add</button>
  </form>
</section>

{{ counters(stats) }}
{{ bars(top_words, 'word', 'Top Words') }}
{{ bars(trend, 'label', 'Last 7 Days') }}

<section class="card">
  <div style="display:flex;justify-content:space-between;align-items:center;">
    <h3 style="margin:0;">Recent Entries</h3>
    <span style="display:flex;gap:.4rem;">
      {% if share %}<a class="button" href="{{ share }}">Share</a>{% endif %}
      {% if entries %}<button class="ghost" id="clear-btn" type="button">Clear All</button>{% endif %}
      <button class="ghost" id="logout-btn" type="button">Logout</button>
    </span>
  </div>
  {% if recent %}
    {% for e in recent %}
      <div class="entry">
        <span><span class="pill">{{ e.word }}</span>
          <small style="color:#888;">{{ e.date }}</small></span>
        <button class="ghost delete-btn" type="button" data-id="{{ e.id }}" aria-label="Delete">×</button>
      </div>
    {% endfor %}
    {% if entries|length > recent|length %}
      <p class="empty" style="padding:.5rem 0;">Showing {{ recent|length }} of {{ entries|length }} entries</p>
    {% endif %}
  {% else %}
    <div class="empty">No entries yet. Start tracking your swears!</div>
  {% endif %}
</section>

<script>
(function () {
  const signin = {{ url_for('signin')|tojson }};
  async function call(method, url, body, failure) {
    try {
      const resp = await fetch(url, {
        method: method,
        headers: body ? {"Content-Type": "application/json"} : {},
        body: body ? JSON.stringify(body) : undefined,
      });
      if (resp.status === 401) { location.href = signin; return; }
      if (!resp.ok) { throw new Error(failure); }
      location.reload();
    } catch (err) {
      alert(failure + " Please try again.");
    }
  }
  document.getElementById("add-form").addEventListener("submit", function (ev) {
    ev.preventDefault();
    const word = document.getElementById("word").value.trim();
    if (word) { call("POST", "/entries", {word: word}, "Failed to add entry."); }
  });
  document.querySelectorAll(".delete-btn").forEach(function (btn) {
    btn.addEventListener("click", function () {
      call("DELETE", "/entries/" + encodeURIComponent(btn.dataset.id), null, "Failed to delete entry.");
    });
  });
  const clear = document.getElementById("clear-btn");
  if (clear) {
    clear.addEventListener("click", function () {
      if (confirm("Are you sure you want to clear all entries?")) {
        call("DELETE", "/entries", null, "Failed to clear entries.");
      }
    });
  }
  document.getElementById("logout-btn").addEventListener("click", async function () {
    try { await fetch("/logout", {method: "POST"}); } finally { location.href = signin; }
  });
})();
</script>
""")


@app.route("/signin")
def signin():
    return render_template_string(TEMPL_SIGNIN, username=current_identity())


TEMPL_SIGNIN = wrap("""
<section class="card" style="margin-top:1.5rem;">
  <h2 style="margin-top:0;">Who's swearing?</h2>
  <form method="post" action="{{ url_for('login') }}" style="display:flex;gap:.6rem;margin:0;">
    <input name="username" placeholder="Username" autocomplete="username" style="flex:1;margin:0;" required>
    <button type="submit">Continue</button>
  </form>
  <p style="font-size:.8em;color:#888;margin-bottom:0;">
    No password. Anyone who knows the name can see the jar.
    Prefer to keep it on this device? Use the <a href="{{ url_for('local_board') }}">local jar</a>.
  </p>
</section>
""")


# -------------------------------------------------------------------------
# Local (device-only) board
# -------------------------------------------------------------------------
def _local_log() -> LocalLog:
    """Log for the calling device; a device without a cookie gets a fresh id."""
    device = request.cookies.get(DEVICE_COOKIE, "")
    if not DEVICE_RE.match(device):
        device = secrets.token_urlsafe(16)
    shared = request.values.get(SHARE_PARAM, "")
    return LocalLog(get_store(), shared, device)


def _remember_device(resp, log: LocalLog):
    resp.set_cookie(
        DEVICE_COOKIE,
        log.device,
        max_age=IDENTITY_MAX_AGE,
        httponly=True,
        samesite="Lax",
        secure=app.config["COOKIE_SECURE"],
    )
    return resp


def _back_to_local(log: LocalLog):
    resp = redirect(url_for("local_board", **{SHARE_PARAM: log.shared or None}), 303)
    return _remember_device(resp, log)


@app.route("/local")
def local_board():
    log = _local_log()
    entries = list_entries(log)
    snapshot = stats_snapshot(entries)
    page = render_template_string(
        TEMPL_LOCAL,
        entries=entries,
        recent=entries[:RECENT_LIMIT],
        shared=encode_state(entries),
        share=share_url(entries, request.host_url) if entries else None,
        **snapshot,
    )
    return _remember_device(make_response(page), log)


@app.route("/local/add", methods=["POST"])
def local_add():
    log = _local_log()
    try:
        append_entry(log, request.form.get("word"))
    except ValidationError as exc:
        flash(exc.message)
    return _back_to_local(log)


@app.route("/local/delete/<path:entry_id>", methods=["POST"])
def local_delete(entry_id):
    log = _local_log()
    try:
        remove_entry(log, entry_id)
    except (ValidationError, NotFoundError) as exc:
        flash(exc.message)
    return _back_to_local(log)


@app.route("/local/clear", methods=["POST"])
def local_clear():
    log = _local_log()
    clear_entries(log)
    return _back_to_local(log)


TEMPL_LOCAL = wrap("""
<section class="card" style="margin-top:1.5rem;">
  <form method="post" action="{{ url_for('local_add') }}" style="display:flex;gap:.6rem;align-items:flex-end;margin:0;">
    <input type="hidden" name="s" value="{{ shared }}">
    <div style="flex:1;">
      <label for="word" style="display:block;font-size:.85em;">Swear word</label>
      <input id="word" name="word" placeholder="Enter a word..." autocomplete="off" style="width:100%;margin:0;">
    </div>
    <button type="submit">+ Add</button>
  </form>
  <p style="font-size:.8em;color:#888;margin:.6rem 0 0;">
    Kept on this device and in the page link.
    {% if share %}Share it: <a href="{{ share }}" style="word-break:break-all;">{{ share }}</a>{% endif %}
  </p>
</section>

{{ counters(stats) }}
{{ bars(top_words, 'word', 'Top Words') }}
{{ bars(trend, 'label', 'Last 7 Days') }}

<section class="card">
  <div style="display:flex;justify-content:space-between;align-items:center;">
    <h3 style="margin:0;">Recent Entries</h3>
    {% if entries %}
    <form method="post" action="{{ url_for('local_clear') }}" style="margin:0;"
          onsubmit="return confirm('Are you sure you want to clear all entries?');">
      <input type="hidden" name="s" value="{{ shared }}">
      <button class="ghost" type="submit">Clear All</button>
    </form>
    {% endif %}
  </div>
  {% if recent %}
    {% for e in recent %}
      <div class="entry">
        <span><span class="pill">{{ e.word }}</span>
          <small style="color:#888;">{{ e.date }}</small></span>
        <form method="post" action="{{ url_for('local_delete', entry_id=e.id) }}" style="margin:0;">
          <input type="hidden" name="s" value="{{ shared }}">
          <button class="ghost" type="submit" aria-label="Delete">×</button>
        </form>
      </div>
    {% endfor %}
    {% if entries|length > recent|length %}
      <p class="empty" style="padding:.5rem 0;">Showing {{ recent|length }} of {{ entries|length }} entries</p>
    {% endif %}
  {% else %}
    <div class="empty">No entries yet. Start tracking your swears!</div>
  {% endif %}
</section>
""")


###############################################################################
# Error pages
###############################################################################
def _wants_json() -> bool:
    return request.path.strip("/").split("/", 1)[0] in API_ROOTS


@app.errorhandler(404)
def not_found(exc):
    if _wants_json():
        return {"error": "Not found"}, 404
    return render_template_string(TEMPL_404), 404


@app.errorhandler(500)
def internal_error(exc):
    if _wants_json():
        return {"error": "Internal server error"}, 500
    return render_template_string(TEMPL_500), 500


TEMPL_404 = wrap("""
<h2>Page not found</h2>
<p>The URL you asked for doesn’t exist. <a href="{{ url_for('index') }}">Back to the jar</a>.</p>
""")

TEMPL_500 = wrap("""
<h2>Internal Server Error</h2>
<p>Our fault, not yours. Please try again in a minute.</p>
""")


###############################################################################
# CLI
###############################################################################
def _cli_log(username: str) -> StoreLog:
    identity = normalize_username(username)
    if not identity:
        raise click.BadParameter("username must not be blank")
    return StoreLog(get_store(), identity)


def merge_logs(incoming: list[dict], existing: list[dict]) -> list[dict]:
    """Union by id (incoming wins), newest first."""
    seen = {e["id"] for e in incoming}
    merged = list(incoming) + [e for e in existing if e["id"] not in seen]
    return sorted(merged, key=lambda e: e["timestamp"], reverse=True)


@app.cli.command("init-db")
def cli_init_db():
    """Create the key/value table."""
    init_db()
    click.secho("Database ready.", fg="green")


@app.cli.command("entries")
@click.argument("username")
def cli_entries(username: str):
    """Print a user's entries, newest first."""
    entries = list_entries(_cli_log(username))
    if not entries:
        click.echo("No entries.")
        return
    for e in entries:
        click.echo(f"{e['date']}  {e['word']:<20} {e['id']}")


@app.cli.command("stats")
@click.argument("username")
def cli_stats(username: str):
    """Print a user's counters and top words."""
    snap = stats_snapshot(list_entries(_cli_log(username)))
    s = snap["stats"]
    click.echo(
        f"total {s['total']}  today {s['today']}  "
        f"week {s['thisWeek']}  month {s['thisMonth']}"
    )
    for row in snap["top_words"]:
        click.echo(f"  {row['word']:<20} {row['count']}")


@app.cli.command("clear")
@click.argument("username")
@click.confirmation_option(prompt="Delete every entry for this user?")
def cli_clear(username: str):
    """Delete all of a user's entries."""
    clear_entries(_cli_log(username))
    click.secho("Cleared.", fg="yellow")


@app.cli.command("export")
@click.argument("username")
@click.option("--output", "-o", type=click.File("w"), default="-", help="Target file.")
def cli_export(username: str, output):
    """Dump a user's log as JSON."""
    entries = list_entries(_cli_log(username))
    output.write(json.dumps(entries, indent=2, ensure_ascii=False) + "\n")


@app.cli.command("import")
@click.argument("username")
@click.argument("source", type=click.File("r"))
@click.option("--merge", is_flag=True, help="Keep existing entries (dedupe by id).")
def cli_import(username: str, source, merge: bool):
    """Replace (or merge into) a user's log from a JSON export."""
    try:
        data = json.load(source)
    except ValueError as exc:
        raise click.ClickException(f"not JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("entries")
    if not isinstance(data, list) or not all(valid_entry(e) for e in data):
        raise click.ClickException("expected a list of entries with id, word, timestamp, date")

    log = _cli_log(username)
    entries = (
        merge_logs(data, list_entries(log))
        if merge
        else sorted(data, key=lambda e: e["timestamp"], reverse=True)
    )
    log.save(entries)
    click.secho(f"Imported {len(data)} entries ({len(entries)} total).", fg="green")


@app.cli.command("share")
@click.argument("username")
@click.option("--base-url", default="http://localhost:5000", show_default=True)
def cli_share(username: str, base_url: str):
    """Print a /local link that carries a user's log."""
    entries = list_entries(_cli_log(username))
    if not entries:
        click.echo("Nothing to share.")
        return
    click.echo(share_url(entries, base_url))


###############################################################################
# main
###############################################################################
if __name__ == "__main__":
    app.run(debug=True)
