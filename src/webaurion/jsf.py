"""Helpers for Aurion's JSF / PrimeFaces plumbing.

Every form POST must echo the page's javax.faces.ViewState, and PrimeFaces
components are addressed by generated ids ("form:j_idt118") that change
between deployments, so they are scraped from the page rather than hardcoded.
AJAX calls come back as <partial-response> XML whose <update> elements hold
CDATA payloads.
"""

import re

from bs4 import BeautifulSoup

from webaurion.logging import get_logger

log = get_logger(__name__)

VIEW_STATE_FIELD = "javax.faces.ViewState"
COMPONENT_PREFIX = "form:j_idt"

# Sidebar loader, e.g. chargerSousMenu = function() {PrimeFaces.ab({s:"form:j_idt52",...
_SIDEBAR_LOADER_RE = re.compile(
    r'chargerSousMenu\s*=\s*function\(\)\s*\{\s*PrimeFaces\.ab\(\{\s*s:\s*"form:j_idt(\d+)"'
)
_COMPONENT_ID_RE = re.compile(r"^form:j_idt(\d+)$")


def component_id(form_id: int) -> str:
    """Return the client id of a generated component ("form:j_idt118")."""
    return f"{COMPONENT_PREFIX}{form_id}"


def get_view_state(html: str | bytes) -> str | None:
    """Extract the javax.faces.ViewState hidden input value, if present."""
    soup = BeautifulSoup(html, "lxml")
    field = soup.find("input", attrs={"name": VIEW_STATE_FIELD})
    if field is None or not field.get("value"):
        log.debug("view_state_missing")
        return None
    return field["value"]


def get_sidebar_form_id(html: str | bytes) -> int | None:
    """Extract the id of the component that lazy-loads sidebar submenus."""
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    match = _SIDEBAR_LOADER_RE.search(html)
    if match is None:
        log.debug("sidebar_form_id_missing")
        return None
    return int(match.group(1))


def get_schedule_form_id(html: str | bytes) -> int | None:
    """Extract the id of the PrimeFaces schedule component on Planning.xhtml."""
    soup = BeautifulSoup(html, "lxml")
    for div in soup.find_all("div", class_="schedule"):
        match = _COMPONENT_ID_RE.match(div.get("id", ""))
        if match:
            return int(match.group(1))
    log.debug("schedule_form_id_missing")
    return None


def partial_request(source: str, render: str | None = None) -> dict[str, str]:
    """Base payload of a PrimeFaces partial AJAX request fired by `source`."""
    return {
        "javax.faces.partial.ajax": "true",
        "javax.faces.source": source,
        "javax.faces.partial.execute": source,
        "javax.faces.partial.render": render or source,
        source: source,
        "form": "form",
    }


def get_partial_update(markup: str | bytes, update_id: str) -> str | None:
    """Return the CDATA payload of `<update id=update_id>`, or None if absent."""
    if isinstance(markup, str):
        # lxml refuses str input that carries an encoding declaration
        markup = markup.encode("utf-8")
    soup = BeautifulSoup(markup, "xml")
    update = soup.find("update", attrs={"id": update_id})
    if update is None:
        return None
    return update.get_text()


def get_partial_redirect(markup: str | bytes) -> str | None:
    """Return the url of a partial response's <redirect> element, if any."""
    if isinstance(markup, str):
        markup = markup.encode("utf-8")
    if b"<partial-response" not in markup:
        return None
    redirect = BeautifulSoup(markup, "xml").find("redirect")
    if redirect is None:
        return None
    return redirect.get("url")


def looks_like_login_page(html: str | bytes) -> bool:
    """True if the markup is Aurion's login form rather than a content page."""
    soup = BeautifulSoup(html, "lxml")
    return soup.find("input", attrs={"name": "password"}) is not None
