from http.server import BaseHTTPRequestHandler, HTTPServer
import logging
import threading
from typing import Optional

logger = logging.getLogger("brainz_scrobbler")

_REPLY_HTML = """<html>
<head><title>brainz-scrobbler</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 50px;">
<p>Authorization received. You can close this window.</p>
</body>
</html>
"""


class RedirectHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        # the full path including the query goes to the owner unparsed
        self.server.redirect_server.request_arrived(self.path)

        self.send_response(200)
        self.send_header("Content-type", "text/html")
        self.end_headers()
        self.wfile.write(_REPLY_HTML.encode("utf-8"))

    def log_message(self, format, *args):
        logger.debug(f"Redirect listener: {format % args}")


class LocalRedirectServer:
    """
    One-shot HTTP listener on localhost that catches the browser redirect
    at the end of the OAuth authorization.

    listen() binds a free port and serves on a daemon thread. The thread
    only stores the request and sets finished; the owner polls finished and
    reads request_url on its own thread.
    """

    def __init__(self, host: str = "localhost", port: int = 0):
        self.host = host
        self.port = port
        self.error = ""
        self.request_url: Optional[str] = None
        self.finished = threading.Event()

        self._httpd: Optional[HTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def is_listening(self) -> bool:
        return self._httpd is not None

    def listen(self) -> bool:
        """
        Binds the listener and starts serving.

        :return: bool. False if the port couldn't be bound, self.error
            holds the reason in that case
        """
        try:
            self._httpd = HTTPServer((self.host, self.port), RedirectHandler)
        except OSError as e:
            self.error = f"Failed to start local redirect listener: {e}"
            self._httpd = None
            return False

        self._httpd.redirect_server = self
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name="brainz-redirect",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Listening for redirect on {self.url}")
        return True

    def request_arrived(self, path: str):
        if self.finished.is_set():
            return
        self.request_url = f"{self.url}{path}"
        self.finished.set()

    def close(self):
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
        self._thread = None
