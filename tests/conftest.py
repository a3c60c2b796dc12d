"""Fixtures: literal Aurion markup and an in-process mock Aurion server."""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from itertools import count
from urllib.parse import parse_qs, urlsplit

import pytest

from webaurion import AurionClient
from webaurion.config import AurionConfig

VALID_USERS = {"jdupont": "s3cret"}
VIEW_STATE = "-4265471032518733471:8745120033541912385"
SIDEBAR_FORM_ID = 52
SCHEDULE_FORM_ID = 118
SCHOOLING_ID = "submenu_291906"
USER_PLANNING_ID = "1_3"
GROUP_PLANNING_ID = "1_4"

LOGIN_HTML = """<html><body>
<form action="login" method="post">
  <input type="text" name="username"/>
  <input type="password" name="password"/>
  <button type="submit">Connexion</button>
</form>
</body></html>"""

MAIN_MENU_HTML = f"""<html><head>
<script>chargerSousMenu = function() {{PrimeFaces.ab({{s:"form:j_idt{SIDEBAR_FORM_ID}",f:"form",p:"form:j_idt{SIDEBAR_FORM_ID}"}});}}</script>
</head><body>
<form id="form" name="form" method="post">
  <div id="form:sidebar" class="sidebar"></div>
  <input type="hidden" name="javax.faces.ViewState" id="j_id1:javax.faces.ViewState:0" value="{VIEW_STATE}" autocomplete="off"/>
</form>
</body></html>"""

PLANNING_HTML = f"""<html><body>
<form id="form" name="form" method="post">
  <div id="form:j_idt{SCHEDULE_FORM_ID}" class="schedule"></div>
  <input type="hidden" name="javax.faces.ViewState" id="j_id1:javax.faces.ViewState:0" value="{VIEW_STATE}" autocomplete="off"/>
</form>
</body></html>"""

SIDEBAR_HTML = f"""<div id="form:sidebar" class="ui-menu">
<ul class="ui-menu-list">
  <li class="ui-widget ui-menuitem ui-corner-all ui-menu-parent {SCHOOLING_ID} ui-menuitem-active" role="menuitem">
    <a href="#" class="ui-menuitem-link"><span class="ui-menuitem-text">Scolarité</span></a>
    <ul class="ui-menu-list">
      <li class="ui-widget ui-menuitem ui-corner-all ui-menu-parent submenu_299102" role="menuitem">
        <a href="#" class="ui-menuitem-link"><span class="ui-menuitem-text">Plannings des groupes</span></a>
      </li>
      <li class="ui-menuitem ui-widget ui-corner-all" role="menuitem">
        <a href="#" class="ui-menuitem-link" onclick="PrimeFaces.addSubmitParam('form',{{'form:sidebar':'form:sidebar','form:sidebar_menuid':'{USER_PLANNING_ID}'}}).submit('form');return false;"><span class="ui-menuitem-text">Mon planning</span></a>
      </li>
      <li class="ui-menuitem ui-widget ui-corner-all" role="menuitem">
        <a href="#" class="ui-menuitem-link" onclick="PrimeFaces.addSubmitParam('form',{{'form:sidebar':'form:sidebar','form:sidebar_menuid':'{GROUP_PLANNING_ID}'}}).submit('form');return false;"><span class="ui-menuitem-text">Planning des salles</span></a>
      </li>
    </ul>
  </li>
</ul>
</div>"""

GROUPS_HTML = """<html><body>
<form id="form">
<div id="form:dataTableFavori" class="ui-datatable ui-widget">
  <table role="grid">
    <thead><tr><th>Favori</th><th>Libellé</th></tr></thead>
    <tbody id="form:dataTableFavori_data" class="ui-datatable-data ui-widget-content">
      <tr data-ri="0" data-rk="40915" class="ui-widget-content ui-datatable-even" role="row">
        <td role="gridcell"><span class="ui-icon ui-icon-star"></span></td>
        <td role="gridcell"><span class="preformatted">CIR3 Groupe A</span></td>
      </tr>
      <tr data-ri="1" data-rk="40916" class="ui-widget-content ui-datatable-odd" role="row">
        <td role="gridcell"><span class="ui-icon ui-icon-star"></span></td>
        <td role="gridcell"><span class="preformatted">CIR3 Groupe B</span></td>
      </tr>
    </tbody>
  </table>
</div>
</form>
</body></html>"""


def partial_response(update_id: str, payload: str) -> str:
    """A JSF partial response carrying `payload` in `<update id=update_id>`."""
    return (
        "<?xml version='1.0' encoding='UTF-8'?>\n"
        '<partial-response id="j_id1"><changes>'
        f'<update id="{update_id}"><![CDATA[{payload}]]></update>'
        f'<update id="j_id1:javax.faces.ViewState:0"><![CDATA[{VIEW_STATE}]]></update>'
        "</changes></partial-response>"
    )


def raw_event(event_id, title, start, end, class_name="CM") -> dict:
    return {
        "id": str(event_id),
        "title": title,
        "start": start,
        "end": end,
        "allDay": False,
        "editable": True,
        "className": class_name,
    }


def events_response(events: list[dict], form_id: int = SCHEDULE_FORM_ID) -> str:
    payload = '{"events" : ' + json.dumps(events, ensure_ascii=False) + "}"
    return partial_response(f"form:j_idt{form_id}", payload)


SAMPLE_EVENTS = [
    raw_event(
        1001,
        "08h00 à 10h00 - Room A204 - CM - Math101 - Limits - DUPONT Jean - CIR3",
        "2024-09-16T08:00:00+02:00",
        "2024-09-16T10:00:00+02:00",
        "CM",
    ),
    raw_event(
        1002,
        "10h15 à 12h15 - B101 / B102 - TP - Physics - Optics - Waves - MARTIN Paul / DURAND Lea - CIR3",
        "2024-09-16T10:15:00+02:00",
        "2024-09-16T12:15:00+02:00",
        "TP",
    ),
    raw_event(
        1003,
        "07h30 à 09h30 - Amphi Sud - DS - Chemistry -  -  - CIR3",
        "2024-09-15T07:30:00+02:00",
        "2024-09-15T09:30:00+02:00",
        "DS",
    ),
]


class MockAurion:
    """State of the mock server; tests tweak it to shape responses."""

    def __init__(self) -> None:
        self.base_url = ""
        self.tokens: set[str] = set()
        self._counter = count(1)
        self.login_status: int | None = None
        self.login_location = "/"
        self.login_sets_cookie = True
        self.login_delay = 0.0
        self.landing_html = MAIN_MENU_HTML
        self.planning_status: int | None = None
        self.schedule_body = events_response(SAMPLE_EVENTS)
        self.planning_html = PLANNING_HTML
        self.sidebar_html = SIDEBAR_HTML
        self.groups_html = GROUPS_HTML
        self.schedule_delay = 0.0
        self.requests: list[tuple[str, str, dict[str, str]]] = []

    def issue_token(self) -> str:
        return f"node0{next(self._counter):04d}abcdef"

    def posted(self, path: str) -> list[dict[str, str]]:
        return [form for method, p, form in self.requests if method == "POST" and p == path]


class _Handler(BaseHTTPRequestHandler):
    server_version = "MockAurion/1.0"

    @property
    def aurion(self) -> MockAurion:
        return self.server.aurion

    def log_message(self, format, *args):  # noqa: A002
        pass

    def _form(self) -> dict[str, str]:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8")
        return {k: v[0] for k, v in parse_qs(body, keep_blank_values=True).items()}

    def _send(self, status: int, body: str = "", content_type: str = "text/html", headers=None):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", f"{content_type}; charset=UTF-8")
        self.send_header("Content-Length", str(len(data)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(data)

    def _redirect(self, path: str, headers=None):
        self._send(302, headers={"Location": f"{self.aurion.base_url}{path}", **(headers or {})})

    def _token(self) -> str | None:
        for part in (self.headers.get("Cookie") or "").split(";"):
            name, _, value = part.strip().partition("=")
            if name == "JSESSIONID":
                return value
        return None

    def _authenticated(self) -> bool:
        if self._token() in self.aurion.tokens:
            return True
        self._redirect("/login")
        return False

    def do_GET(self):
        path = urlsplit(self.path).path.removeprefix("/webAurion")
        self.aurion.requests.append(("GET", path, {}))

        if path == "/login":
            self._send(200, LOGIN_HTML)
        elif path == "/logout":
            self.aurion.tokens.discard(self._token())
            self._redirect("/login")
        elif not self._authenticated():
            return
        elif path == "/":
            self._send(200, self.aurion.landing_html)
        elif path == "/faces/Planning.xhtml":
            self._send(self.aurion.planning_status or 200, self.aurion.planning_html)
        elif path == "/faces/ChoixPlanning.xhtml":
            self._send(200, self.aurion.groups_html)
        else:
            self._send(404, "not found")

    def do_POST(self):
        path = urlsplit(self.path).path.removeprefix("/webAurion")
        form = self._form()
        self.aurion.requests.append(("POST", path, form))

        if path == "/login":
            if self.aurion.login_delay:
                time.sleep(self.aurion.login_delay)
            if self.aurion.login_status is not None:
                self._send(self.aurion.login_status, "<html>Erreur interne</html>")
            elif VALID_USERS.get(form.get("username")) == form.get("password"):
                token = self.aurion.issue_token()
                self.aurion.tokens.add(token)
                headers = {}
                if self.aurion.login_sets_cookie:
                    headers["Set-Cookie"] = f"JSESSIONID={token}; Path=/webAurion; HttpOnly"
                self._redirect(self.aurion.login_location, headers=headers)
            else:
                self._send(200, LOGIN_HTML)
        elif not self._authenticated():
            return
        elif path == "/faces/MainMenuPage.xhtml":
            if form.get("javax.faces.partial.ajax") == "true":
                self._send(200, partial_response("form:sidebar", self.aurion.sidebar_html), "text/xml")
            elif form.get("form:sidebar_menuid") == USER_PLANNING_ID:
                self._redirect("/faces/Planning.xhtml")
            elif form.get("form:sidebar_menuid") == GROUP_PLANNING_ID:
                self._redirect("/faces/ChoixPlanning.xhtml")
            else:
                self._send(200, MAIN_MENU_HTML)
        elif path == "/faces/Planning.xhtml":
            if self.aurion.schedule_delay:
                time.sleep(self.aurion.schedule_delay)
            self._send(200, self.aurion.schedule_body, "text/xml")
        else:
            self._send(404, "not found")


@pytest.fixture
def aurion():
    """A running mock Aurion portal under /webAurion."""
    state = MockAurion()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.aurion = state
    host, port = server.server_address[:2]
    state.base_url = f"http://{host}:{port}/webAurion"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield state
    server.shutdown()
    server.server_close()


@pytest.fixture
def config(aurion):
    return AurionConfig(
        _env_file=None,
        aurion_url=aurion.base_url,
        aurion_schooling_id=SCHOOLING_ID,
        aurion_user_planning_id=USER_PLANNING_ID,
        request_timeout=5.0,
        max_session_age_hours=24,
    )


@pytest.fixture
def client(config):
    return AurionClient(config=config)


@pytest.fixture
def session(client):
    return client.login("jdupont", VALID_USERS["jdupont"])
