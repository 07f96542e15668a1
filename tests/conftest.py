import itertools
import json
import re
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from studydocs.config import Settings
from studydocs.controllers.auth import AuthController
from studydocs.controllers.dashboard import DashboardController
from studydocs.services.alerts import AlertCenter
from studydocs.services.documents import DocumentRepository
from studydocs.services.http import SupabaseHttp
from studydocs.services.session import SessionClient
from studydocs.services.storage import StorageClient
from studydocs.services.workflow import DocumentService

BASE_URL = "https://test.supabase.co"
ANON_KEY = "anon-test-key"
PASSWORD = "secret123"


def _json(status, body):
    return httpx.Response(status, json=body)


class FakeSupabase:
    """In-memory stand-in for the auth, PostgREST and storage endpoints.

    Row-level security is modelled the way the hosted project configures it:
    rows and objects are only visible to the user whose token is presented.
    """

    def __init__(self):
        self.users = {}  # email -> {"id", "password", "confirmed"}
        self.tokens = {}  # access token -> user id
        self.refresh_tokens = {}  # refresh token -> user id
        self.rows = []
        self.objects = {}  # path -> (bytes, content type)
        self.signed = []  # (path, ttl)
        self.signup_redirects = []
        self.calls = []  # (method, path)
        self.offline = False
        self.fail_storage_remove = False
        self.fail_list = False
        self.fail_insert = False
        self.rest_reply_text = None  # when set, every authorised REST call answers 200 with this body
        self.expire_all_tokens = False
        self.token_ttl = 3600
        self._seq = itertools.count(1)
        self._clock = datetime(2025, 1, 5, 12, 0, tzinfo=timezone.utc)

    # ---------------- helpers ----------------
    def add_user(self, email, password=PASSWORD, confirmed=True):
        uid = str(uuid.uuid4())
        self.users[email] = {"id": uid, "password": password, "confirmed": confirmed}
        return uid

    def _issue(self, uid, email):
        n = next(self._seq)
        access, refresh = f"access-{n}", f"refresh-{n}"
        self.tokens[access] = uid
        self.refresh_tokens[refresh] = uid
        return {
            "access_token": access,
            "token_type": "bearer",
            "expires_in": self.token_ttl,
            "refresh_token": refresh,
            "user": {"id": uid, "email": email, "aud": "authenticated"},
        }

    def _email_for(self, uid):
        for email, u in self.users.items():
            if u["id"] == uid:
                return email
        return None

    def _caller(self, request):
        auth = request.headers.get("authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
        if self.expire_all_tokens:
            return None
        return self.tokens.get(token)

    def transport(self):
        return httpx.MockTransport(self.handler)

    # ---------------- dispatch ----------------
    def handler(self, request):
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        self.calls.append((request.method, path))
        if path.startswith("/auth/v1"):
            return self._auth(request, path[len("/auth/v1"):])
        if path.startswith("/rest/v1/documents"):
            return self._rest(request)
        if path.startswith("/storage/v1"):
            return self._storage(request, path[len("/storage/v1"):])
        return _json(404, {"message": "not found"})

    # ---------------- auth ----------------
    def _auth(self, request, path):
        data = json.loads(request.content) if request.content else {}
        if path == "/token":
            grant = request.url.params.get("grant_type")
            if grant == "password":
                u = self.users.get(data.get("email"))
                if not u or u["password"] != data.get("password"):
                    return _json(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
                if not u["confirmed"]:
                    return _json(400, {"error": "invalid_grant", "error_description": "Email not confirmed"})
                return _json(200, self._issue(u["id"], data["email"]))
            if grant == "refresh_token":
                uid = self.refresh_tokens.pop(data.get("refresh_token"), None)
                if uid is None:
                    return _json(400, {"error": "invalid_grant", "error_description": "Invalid Refresh Token"})
                return _json(200, self._issue(uid, self._email_for(uid)))
        if path == "/signup":
            email = data.get("email")
            if email in self.users:
                return _json(422, {"code": 422, "msg": "User already registered"})
            uid = self.add_user(email, data.get("password"), confirmed=False)
            self.signup_redirects.append(request.url.params.get("redirect_to"))
            return _json(200, {"id": uid, "email": email, "aud": "authenticated"})
        if path == "/logout":
            auth = request.headers.get("authorization", "")
            token = auth[len("Bearer "):]
            if token not in self.tokens:
                return _json(401, {"msg": "invalid JWT"})
            self.tokens.pop(token)
            return httpx.Response(204)
        return _json(404, {"msg": "not found"})

    # ---------------- database ----------------
    def _filters(self, request):
        out = []
        for key, value in request.url.params.multi_items():
            if key in ("select", "order"):
                continue
            op, _, operand = value.partition(".")
            out.append((key, op, operand))
        return out

    @staticmethod
    def _like(operand):
        # PostgREST turns * into %, then Postgres applies LIKE with \ as escape
        operand = operand.replace("*", "%")
        out, chars = [], iter(operand)
        for ch in chars:
            if ch == "\\":
                out.append(re.escape(next(chars, "\\")))
            elif ch == "%":
                out.append(".*")
            elif ch == "_":
                out.append(".")
            else:
                out.append(re.escape(ch))
        return "".join(out)

    @classmethod
    def _match(cls, row, filters):
        for col, op, operand in filters:
            val = row.get(col)
            if op == "eq" and str(val) != operand:
                return False
            if op == "ilike":
                if val is None or not re.fullmatch(cls._like(operand), str(val), flags=re.IGNORECASE | re.DOTALL):
                    return False
        return True

    def _rest(self, request):
        uid = self._caller(request)
        if uid is None:
            return _json(401, {"code": "PGRST301", "message": "JWT expired"})
        if self.rest_reply_text is not None:
            return httpx.Response(200, text=self.rest_reply_text)
        visible = [r for r in self.rows if r["user_id"] == uid]
        filters = self._filters(request)

        if request.method == "GET":
            if self.fail_list:
                return _json(500, {"message": "database unavailable"})
            rows = [dict(r) for r in visible if self._match(r, filters)]
            order = request.url.params.get("order")
            if order:
                col, _, direction = order.partition(".")
                rows.sort(key=lambda r: r[col], reverse=direction == "desc")
            return _json(200, rows)

        payload = json.loads(request.content) if request.content else None
        if request.method == "POST":
            if self.fail_insert:
                return _json(409, {"code": "23505", "message": "duplicate key value violates unique constraint"})
            created = []
            for item in payload if isinstance(payload, list) else [payload]:
                if item.get("user_id") != uid:
                    return _json(403, {"code": "42501", "message": 'new row violates row-level security policy for table "documents"'})
                self._clock += timedelta(seconds=1)
                row = {
                    "id": str(uuid.uuid4()),
                    "title": item["title"],
                    "description": item.get("description"),
                    "file_path": item["file_path"],
                    "uploaded_at": self._clock.isoformat(),
                    "user_id": uid,
                }
                self.rows.append(row)
                created.append(dict(row))
            return _json(201, created)

        targets = [r for r in visible if self._match(r, filters)]
        if request.method == "PATCH":
            for r in targets:
                r.update(payload)
            return _json(200, [dict(r) for r in targets])
        if request.method == "DELETE":
            self.rows = [r for r in self.rows if r not in targets]
            return _json(200, [dict(r) for r in targets])
        return _json(405, {"message": "method not allowed"})

    # ---------------- storage ----------------
    def _storage(self, request, path):
        uid = self._caller(request)
        if uid is None:
            return _json(400, {"statusCode": "403", "error": "Unauthorized", "message": "jwt expired"})

        if request.method == "DELETE" and path == "/object/documents":
            if self.fail_storage_remove:
                return _json(500, {"statusCode": "500", "error": "internal", "message": "Storage backend unavailable"})
            prefixes = json.loads(request.content)["prefixes"]
            removed = []
            for p in prefixes:
                if p in self.objects and p.split("/", 1)[0] == uid:
                    del self.objects[p]
                    removed.append({"name": p, "bucket_id": "documents"})
            return _json(200, removed)

        for prefix in ("/object/authenticated/documents/", "/object/sign/documents/", "/object/documents/"):
            if path.startswith(prefix):
                key = path[len(prefix):]
                break
        else:
            return _json(404, {"message": "not found"})

        if key.split("/", 1)[0] != uid:
            return _json(403, {"statusCode": "403", "error": "Unauthorized", "message": "new row violates row-level security policy"})

        if request.method == "POST" and prefix == "/object/documents/":
            if key in self.objects and request.headers.get("x-upsert") != "true":
                return _json(409, {"statusCode": "409", "error": "Duplicate", "message": "The resource already exists"})
            self.objects[key] = (request.content, request.headers.get("content-type"))
            return _json(200, {"Key": f"documents/{key}"})
        if key not in self.objects:
            return _json(404, {"statusCode": "404", "error": "not_found", "message": "Object not found"})
        if request.method == "GET":
            return httpx.Response(200, content=self.objects[key][0], headers={"content-type": self.objects[key][1]})
        if request.method == "POST" and prefix == "/object/sign/documents/":
            ttl = json.loads(request.content)["expiresIn"]
            self.signed.append((key, ttl))
            return _json(200, {"signedURL": f"/object/sign/documents/{key}?token=signed-{len(self.signed)}"})
        return _json(405, {"message": "method not allowed"})


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL=BASE_URL,
        SUPABASE_ANON_KEY=ANON_KEY,
        SITE_URL="https://portal.example.edu",
        _env_file=None,
    )


@pytest.fixture
def fake():
    return FakeSupabase()


@pytest.fixture
def http(settings, fake):
    client = SupabaseHttp(settings, transport=fake.transport())
    yield client
    client.close()


@pytest.fixture
def store():
    return {}


@pytest.fixture
def session_client(http, store):
    return SessionClient(http, store)


@pytest.fixture
def repository(http, settings):
    return DocumentRepository(http, settings.DOCUMENTS_TABLE)


@pytest.fixture
def storage(http, settings):
    return StorageClient(http, settings.STORAGE_BUCKET)


@pytest.fixture
def service(repository, storage, settings):
    return DocumentService(repository, storage, signed_url_ttl=settings.SIGNED_URL_TTL_SECONDS)


@pytest.fixture
def alerts():
    return AlertCenter(ttl_seconds=6.0)


@pytest.fixture
def dashboard(session_client, service, alerts):
    return DashboardController(session_client=session_client, documents=service, alerts=alerts)


@pytest.fixture
def auth(session_client, alerts, settings):
    return AuthController(session_client=session_client, alerts=alerts, settings=settings)


@pytest.fixture
def sign_in(fake, http):
    """Create a confirmed user and return a signed-in Session for it."""

    def _sign_in(email="alice@uni.edu", store=None):
        if email not in fake.users:
            fake.add_user(email)
        return SessionClient(http, {} if store is None else store).sign_in(email, PASSWORD)

    return _sign_in