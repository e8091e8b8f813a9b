"""
Manta API client with signed authentication, rate limiting, and object-store primitives.
"""
from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from email.utils import formatdate
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import requests

from ..config_structured import get_config
from .errors import MantaError, RemoteRequestError, ValidationError
from .models import MantaResponse
from .router import JobRouter

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE"})
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})
DIRECTORY_CONTENT_TYPE = "application/json; type=directory"
USER_AGENT = "manta-jobs-python"


@dataclass
class RetryPolicy:
    """HTTP retry settings for idempotent Manta requests."""
    max_retries: int = 3
    backoff_seconds: float = 0.5
    timeout_seconds: float = 30.0


@dataclass
class RateLimitPolicy:
    """Token-bucket rate-limit settings for Manta API access."""
    requests_per_second: float = 10.0
    burst: int = 5


class RequestLimiter:
    """
    Lightweight token-bucket limiter shared by every request of one client.
    """

    def __init__(self, policy: Optional[RateLimitPolicy] = None):
        """Initialize RequestLimiter."""
        cfg = policy or RateLimitPolicy()
        self.requests_per_second = float(max(cfg.requests_per_second, 0.1))
        self.burst = float(max(cfg.burst, 1))
        self._tokens = self.burst
        self._last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        """Internal helper for refill."""
        now = time.monotonic()
        elapsed = max(0.0, now - self._last_refill)
        self._last_refill = now
        self._tokens = min(self.burst, self._tokens + elapsed * self.requests_per_second)

    def acquire(self) -> None:
        """acquire."""
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                deficit = 1.0 - self._tokens
                wait_for = deficit / max(self.requests_per_second, 1e-6)
            time.sleep(max(wait_for, 0.01))


class MantaSigner:
    """
    Signs Manta requests with the HTTP Signature scheme (rsa-sha256).

    Signed string (exact):
        date: <Date header value>

    The key id is ``/<account>[/<subuser>]/keys/<fingerprint>``; when no
    fingerprint is given it is derived from the private key as the MD5
    fingerprint of the OpenSSH public key.
    """

    algorithm = "rsa-sha256"

    def __init__(
        self,
        account: str,
        key_id: Optional[str] = None,
        subuser: Optional[str] = None,
        private_key_path: Optional[str] = None,
        private_key_pem: Optional[Union[str, bytes]] = None,
        passphrase: Optional[str] = None,
        sign_func: Optional[Callable[[bytes], Union[bytes, str]]] = None,
    ):
        """Initialize MantaSigner."""
        self.account = str(account or "").strip().strip("/")
        self.key_id = str(key_id).strip() if key_id else ""
        self.subuser = str(subuser).strip() if subuser else ""
        self.private_key_path = str(private_key_path).strip() if private_key_path else ""
        self.private_key_pem = private_key_pem
        self.passphrase = passphrase
        self.sign_func = sign_func
        self._cached_key = None

    def available(self) -> bool:
        """Return whether requests can be signed with the configured material."""
        if not self.account:
            return False
        if self.sign_func is not None:
            return bool(self.key_id)
        return bool(self.private_key_path or self.private_key_pem)

    def _load_private_key(self):
        """Load and cache the private key using the cryptography library."""
        if self._cached_key is not None:
            return self._cached_key

        from cryptography.hazmat.primitives.asymmetric import rsa
        from cryptography.hazmat.primitives.serialization import load_pem_private_key

        pw = self.passphrase.encode("utf-8") if self.passphrase else None

        if self.private_key_path and os.path.exists(self.private_key_path):
            with open(self.private_key_path, "rb") as f:
                pem_data = f.read()
        elif self.private_key_pem:
            pem_data = (
                self.private_key_pem.encode("utf-8")
                if isinstance(self.private_key_pem, str)
                else self.private_key_pem
            )
        else:
            raise MantaError("Manta signer missing private key material.")

        key = load_pem_private_key(pem_data, password=pw)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise MantaError(f"Unsupported key type for {self.algorithm}: {type(key).__name__}")
        self._cached_key = key
        return key

    def fingerprint(self) -> str:
        """MD5 fingerprint (``aa:bb:...``) of the key's OpenSSH public blob."""
        from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

        public = self._load_private_key().public_key()
        openssh = public.public_bytes(Encoding.OpenSSH, PublicFormat.OpenSSH)
        blob = base64.b64decode(openssh.split()[1])
        digest = hashlib.md5(blob).hexdigest()
        return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))

    def key_id_path(self) -> str:
        """Full keyId value for the Authorization header."""
        fp = self.key_id or self.fingerprint()
        owner = f"/{self.account}/{self.subuser}" if self.subuser else f"/{self.account}"
        return f"{owner}/keys/{fp}"

    def sign(self, date_header: str) -> str:
        """Base64 signature over ``date: <date_header>``."""
        payload = f"date: {date_header}".encode("utf-8")

        if self.sign_func is not None:
            out = self.sign_func(payload)
            if isinstance(out, str):
                return out
            return base64.b64encode(bytes(out)).decode("ascii")

        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.asymmetric import padding as asym_padding

        key = self._load_private_key()
        raw_sig = key.sign(payload, asym_padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(raw_sig).decode("ascii")

    def authorization(self, date_header: str) -> str:
        """Authorization header value for a request dated *date_header*."""
        return (
            f'Signature keyId="{self.key_id_path()}",'
            f'algorithm="{self.algorithm}",'
            f'headers="date",'
            f'signature="{self.sign(date_header)}"'
        )


def _split_lines(text: str) -> List[str]:
    """Non-blank lines of a newline-delimited payload, in order."""
    return [line.strip() for line in str(text or "").splitlines() if line.strip()]


def _json_lines(text: str) -> List[Dict[str, Any]]:
    """Decode a newline-delimited JSON payload of objects, in order.

    Raises ``ValueError`` on a line that is not JSON or not an object.
    """
    rows: List[Dict[str, Any]] = []
    for line in _split_lines(text):
        row = json.loads(line)
        if not isinstance(row, dict):
            raise ValueError(f"expected a JSON object per line, got {line[:200]!r}")
        rows.append(row)
    return rows


class MantaClient:
    """
    Manta HTTP wrapper with:
      - HTTP-Signature auth headers
      - request throttling + transient-status backoff (idempotent methods only)
      - object-store primitives (objects and directories)
      - job path routing via JobRouter
    """

    def __init__(
        self,
        url: Optional[str] = None,
        account: Optional[str] = None,
        subuser: Optional[str] = None,
        key_id: Optional[str] = None,
        private_key_path: Optional[str] = None,
        private_key_pem: Optional[str] = None,
        private_key_passphrase: Optional[str] = None,
        signer: Optional[MantaSigner] = None,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limit_policy: Optional[RateLimitPolicy] = None,
        limiter: Optional[RequestLimiter] = None,
        router: Optional[JobRouter] = None,
        session: Optional[requests.Session] = None,
        insecure: Optional[bool] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize MantaClient; unset arguments come from ``get_config().connection``."""
        cfg = get_config()
        conn = cfg.connection
        self.url = str(url or conn.url).rstrip("/")
        self.account = str(account or conn.account).strip().strip("/")

        self.signer = signer or MantaSigner(
            account=self.account,
            key_id=key_id or conn.key_id,
            subuser=subuser or conn.subuser,
            private_key_path=private_key_path or conn.key_path,
            private_key_pem=private_key_pem or conn.private_key,
            passphrase=private_key_passphrase or conn.key_passphrase,
        )

        self.router = router or JobRouter(account=self.account)
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=cfg.retry.max_retries,
            backoff_seconds=cfg.retry.backoff_seconds,
            timeout_seconds=cfg.retry.timeout_seconds,
        )
        self.limiter = limiter or RequestLimiter(
            rate_limit_policy
            or RateLimitPolicy(
                requests_per_second=cfg.rate_limit.requests_per_second,
                burst=cfg.rate_limit.burst,
            )
        )
        self.session = session or requests.Session()
        self.insecure = cfg.connection.insecure if insecure is None else bool(insecure)
        self.logger = logger or logging.getLogger(__name__)

    def available(self) -> bool:
        """Return whether the client has what it needs to sign requests."""
        return bool(self.signer and self.signer.available())

    # ── Paths & headers ──────────────────────────────────────────────

    def expand_path(self, path: str) -> str:
        """Make *path* account-rooted; ``~~`` stands for ``/<account>``."""
        p = str(path or "").strip()
        if not p:
            raise ValidationError("empty Manta path")
        if p.startswith("~~"):
            p = f"/{self.account}" + p[2:]
        return "/" + p.lstrip("/")

    def _auth_headers(self) -> Dict[str, str]:
        """Internal helper for auth headers."""
        if not self.available():
            raise MantaError(
                "Manta signer unavailable. Set MANTA_USER and MANTA_KEY_PATH (or MANTA_PRIVATE_KEY).",
            )
        date = formatdate(usegmt=True)
        return {
            "Date": date,
            "Authorization": self.signer.authorization(date),
            "User-Agent": USER_AGENT,
            "Accept": "*/*",
        }

    # ── Request core ─────────────────────────────────────────────────

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, object]] = None,
        body: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send one signed request; raise ``RemoteRequestError`` on non-2xx.

        Idempotent methods are retried on transient statuses and connection
        errors; POSTs are sent exactly once.
        """
        method = method.upper()
        clean_path = self.expand_path(path)
        url = f"{self.url}{clean_path}"
        attempts = self.retry_policy.max_retries + 1 if method in IDEMPOTENT_METHODS else 1

        last_err: Optional[RemoteRequestError] = None
        for attempt in range(attempts):
            req_headers = self._auth_headers()
            if headers:
                req_headers.update(headers)
            try:
                self.limiter.acquire()
                resp = self.session.request(
                    method=method,
                    url=url,
                    headers=req_headers,
                    params=params,
                    data=body,
                    timeout=self.retry_policy.timeout_seconds,
                    stream=stream,
                    verify=not self.insecure,
                )
            except requests.RequestException as exc:
                last_err = RemoteRequestError(
                    None, f"{type(exc).__name__}: {exc}", method=method, path=clean_path,
                )
                last_err.__cause__ = exc
                self.logger.debug("Manta %s %s transport error: %s", method, clean_path, exc)
            else:
                request_id = resp.headers.get("x-request-id") or resp.headers.get("X-Request-Id") or ""
                if request_id:
                    self.logger.debug(
                        "Manta request_id=%s method=%s path=%s status=%s",
                        request_id, method, clean_path, resp.status_code,
                    )
                if 200 <= resp.status_code < 300:
                    return resp

                err = RemoteRequestError(
                    resp.status_code,
                    resp.text,
                    method=method,
                    path=clean_path,
                    request_id=request_id,
                )
                if resp.status_code not in TRANSIENT_STATUSES:
                    raise err
                last_err = err
                if resp.status_code == 429 and attempt + 1 < attempts:
                    retry_after = resp.headers.get("Retry-After")
                    if retry_after:
                        try:
                            time.sleep(max(float(retry_after), 0.25))
                        except (TypeError, ValueError):
                            pass

            if attempt + 1 >= attempts:
                break
            sleep_for = self.retry_policy.backoff_seconds * (2 ** attempt)
            self.logger.debug(
                "Manta %s %s attempt %d failed (%s); retrying in %.2fs",
                method, clean_path, attempt + 1, last_err, sleep_for,
            )
            time.sleep(sleep_for)

        raise last_err

    @staticmethod
    def _wrap(resp: requests.Response, data: Any = None) -> MantaResponse:
        """Internal helper for wrap."""
        return MantaResponse(headers=dict(resp.headers), data=data, status=resp.status_code)

    def get_json(self, path: str, params: Optional[Dict[str, object]] = None) -> MantaResponse:
        """GET a single JSON document."""
        resp = self.request("GET", path, params=params)
        try:
            payload = resp.json() if resp.content else None
        except ValueError as exc:
            raise RemoteRequestError(
                resp.status_code, resp.text, method="GET", path=self.expand_path(path),
            ) from exc
        return self._wrap(resp, payload)

    def get_lines(self, path: str, params: Optional[Dict[str, object]] = None) -> MantaResponse:
        """GET a newline-delimited list (paths); blank lines dropped, order kept."""
        resp = self.request("GET", path, params=params)
        return self._wrap(resp, _split_lines(resp.text))

    def get_json_lines(self, path: str, params: Optional[Dict[str, object]] = None) -> MantaResponse:
        """GET a newline-delimited JSON list."""
        resp = self.request("GET", path, params=params)
        try:
            rows = _json_lines(resp.text)
        except ValueError as exc:
            raise RemoteRequestError(
                resp.status_code, resp.text, method="GET", path=self.expand_path(path),
            ) from exc
        return self._wrap(resp, rows)

    def post(
        self,
        path: str,
        body: Optional[Any] = None,
        content_type: Optional[str] = None,
    ) -> MantaResponse:
        """POST once (never retried)."""
        headers = {"Content-Type": content_type} if content_type else None
        resp = self.request("POST", path, body=body, headers=headers)
        return self._wrap(resp)

    def paginate(
        self,
        path: str,
        params: Optional[Dict[str, object]] = None,
        limit: int = 1000,
        marker_key: str = "name",
    ) -> Iterable[Dict[str, object]]:
        """
        Iterate a JSON-lines listing page by page until a short page is returned.

        Manta's ``marker`` is inclusive, so the first row of every page after
        the first repeats the previous page's last row and is skipped.
        """
        query = dict(params or {})
        query["limit"] = int(limit)
        marker = None
        while True:
            if marker is not None:
                query["marker"] = marker
            rows = self.get_json_lines(path, params=query).data
            page = rows
            if marker is not None and rows and rows[0].get(marker_key) == marker:
                page = rows[1:]
            for row in page:
                yield row
            if len(rows) < limit or not page:
                break
            marker = page[-1].get(marker_key)
            if marker is None:
                break

    # ── Object store ─────────────────────────────────────────────────

    def put_object(
        self,
        content: Union[str, bytes],
        path: str,
        content_type: Optional[str] = None,
        durability_level: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> MantaResponse:
        """Store *content* at *path* (str content is UTF-8 encoded)."""
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        req_headers: Dict[str, str] = {
            "Content-Type": content_type
            or ("text/plain" if isinstance(content, str) else "application/octet-stream"),
            "Content-MD5": base64.b64encode(hashlib.md5(data).digest()).decode("ascii"),
        }
        if durability_level is not None:
            req_headers["Durability-Level"] = str(int(durability_level))
        if headers:
            req_headers.update(headers)
        resp = self.request("PUT", path, body=data, headers=req_headers)
        return self._wrap(resp)

    def get_object(self, path: str) -> MantaResponse:
        """Fetch an object's raw bytes."""
        resp = self.request("GET", path)
        return self._wrap(resp, resp.content)

    def get_object_as_string(self, path: str, encoding: str = "utf-8") -> MantaResponse:
        """Fetch an object and decode it as text."""
        resp = self.request("GET", path)
        return self._wrap(resp, resp.content.decode(encoding))

    def get_object_as_stream(self, path: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Yield an object's bytes in chunks without buffering it whole."""
        resp = self.request("GET", path, stream=True)
        try:
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        finally:
            resp.close()

    def get_object_metadata(self, path: str) -> MantaResponse:
        """HEAD an object or directory."""
        resp = self.request("HEAD", path)
        return self._wrap(resp)

    def exists(self, path: str) -> bool:
        """True if *path* names an object or directory; other errors propagate."""
        try:
            self.request("HEAD", path)
        except RemoteRequestError as exc:
            if exc.status == 404:
                return False
            raise
        return True

    def delete_object(self, path: str) -> MantaResponse:
        """Delete a single object (or an empty directory)."""
        resp = self.request("DELETE", path)
        return self._wrap(resp)

    def put_directory(self, path: str, make_parents: bool = False) -> MantaResponse:
        """Create a directory; with *make_parents*, create missing ancestors below the top level."""
        clean = self.expand_path(path).rstrip("/")
        targets = [clean]
        if make_parents:
            parts = clean.strip("/").split("/")
            targets = ["/" + "/".join(parts[:i]) for i in range(3, len(parts) + 1)] or [clean]
        resp = None
        for target in targets:
            resp = self.request("PUT", target, headers={"Content-Type": DIRECTORY_CONTENT_TYPE})
        return self._wrap(resp)

    def list_directory(self, path: str, limit: int = 1000) -> MantaResponse:
        """List every entry of a directory (all pages)."""
        clean = self.expand_path(path)
        entries = list(self.paginate(clean, limit=limit))
        return MantaResponse(headers={}, data=entries, status=200)

    def delete_directory(self, path: str, recursive: bool = False) -> MantaResponse:
        """Delete a directory; *recursive* removes its contents depth-first first."""
        clean = self.expand_path(path).rstrip("/")
        if recursive:
            for entry in list(self.paginate(clean)):
                child = f"{clean}/{entry['name']}"
                if entry.get("type") == "directory":
                    self.delete_directory(child, recursive=True)
                else:
                    self.delete_object(child)
        return self.delete_object(clean)
