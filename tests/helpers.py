import io
import json

import requests
from PIL import Image


def make_response(status=200, body=b"", headers=None, url=""):
    resp = requests.Response()
    resp.status_code = status
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    resp._content_consumed = True
    resp.headers.update(headers or {})
    resp.url = url
    resp.encoding = "utf-8"
    return resp


def json_response(data, prefix=True, status=200):
    body = json.dumps(data)
    if prefix:
        body = "while (1) {}\n" + body
    return make_response(status, body, {"Content-Type": "application/json"})


def image_response(data):
    return make_response(200, data, {"Content-Type": "image/jpeg"})


def jpeg_bytes(width=800, height=600, color=(200, 80, 40)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, "JPEG")
    return buf.getvalue()


class FakeSession:
    """
    Answers requests from a (method, url) routing table and records every call.
    A route is a response, an exception to raise, a callable, or a list of
    those consumed in order (the last one repeats).
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.headers = {}

    def add(self, method, url, *responses):
        self.routes[(method, url)] = list(responses)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            return make_response(404, b"not found", url=url)
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(result) and not isinstance(result, requests.Response):
            result = result(url, **kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self.request("HEAD", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]

    def headers_sent_to(self, url):
        return [kwargs.get("headers") or {} for _, u, kwargs in self.calls if u == url]
