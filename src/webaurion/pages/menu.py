"""MenuPage - Aurion's lazy-loaded sidebar and main menu form.

The sidebar is a PrimeFaces tree menu. Submenus are loaded on demand with a
partial AJAX POST; selecting a leaf submits the whole main menu form and
Aurion answers with a 302 to the page behind that entry (Planning.xhtml,
ChoixPlanning.xhtml, ...).

Sidebar update markup:
  <li class="ui-widget ui-menuitem ui-corner-all ui-menu-parent submenu_291906 ...">
    <a ...><span class="ui-menuitem-text">Scolarité</span></a>
    <ul>
      <li class="... ui-menu-parent submenu_299102 ..."><a><span class="ui-menuitem-text">Plannings des groupes</span></a></li>
      <li class="ui-menuitem ..."><a onclick="...{'form:sidebar_menuid':'1_3'}..."><span class="ui-menuitem-text">Mon planning</span></a></li>
    </ul>
  </li>
"""

import re

from bs4 import BeautifulSoup, Tag

from webaurion.errors import ParseError
from webaurion.jsf import (
    VIEW_STATE_FIELD,
    component_id,
    get_partial_update,
    partial_request,
)
from webaurion.logging import get_logger
from webaurion.models import MenuNode, Session
from webaurion.pages.base import AurionPage, snippet

log = get_logger(__name__)

SIDEBAR_UPDATE_ID = "form:sidebar"
SUBMENU_FIELD = "webscolaapp.Sidebar.ID_SUBMENU"
MENU_ID_FIELD = "form:sidebar_menuid"

# Fields the main menu form always carries; the j_idt ids here are fixed
# across Aurion deployments.
MAIN_MENU_FIELDS: dict[str, str] = {
    "form:largeurDivCenter": "",
    "form:sauvegarde": "",
    "form:j_idt805:j_idt808_view": "basicDay",
    "form:j_idt820_focus": "",
    "form:j_idt820_input": "",
}

_MENU_ID_RE = re.compile(r"form:sidebar_menuid'\s*:\s*'([^']+)'")
_PLANNING_WORD_RE = re.compile(r"\bPlannings?\b")


class MenuPage(AurionPage):
    """Main menu at /faces/MainMenuPage.xhtml."""

    URL_PATH = "/faces/MainMenuPage.xhtml"

    def load_submenu(self, session: Session, menu_id: str) -> list[MenuNode]:
        """Load a sidebar submenu and return its direct children.

        Raises:
            ParseError: If the sidebar loader id is unknown or the sidebar
                markup lacks the requested submenu.
        """
        if session.form_id is None:
            raise ParseError(
                "Sidebar loader id unknown for this session",
                context="chargerSousMenu script missing from main menu page",
            )

        source = component_id(session.form_id)
        payload = partial_request(source, render=SIDEBAR_UPDATE_ID)
        payload.update(MAIN_MENU_FIELDS)
        payload[VIEW_STATE_FIELD] = session.view_state
        payload[SUBMENU_FIELD] = menu_id

        response = self._post(payload)
        children = parse_menu_children(response.content, menu_id)
        log.debug("submenu_loaded", menu_id=menu_id, children=len(children))
        return children

    def select(self, session: Session, menu_id: str) -> str:
        """Submit the main menu form for a leaf entry.

        Returns:
            The Location Aurion redirected to.

        Raises:
            ParseError: If Aurion did not answer with a redirect.
        """
        payload = {"form": "form", **MAIN_MENU_FIELDS}
        payload["form:sidebar"] = SIDEBAR_UPDATE_ID
        payload[VIEW_STATE_FIELD] = session.view_state
        payload[MENU_ID_FIELD] = menu_id

        response = self._post(payload)
        if not response.is_redirect:
            raise ParseError(
                "Menu selection was not redirected",
                context=f"{MENU_ID_FIELD}={menu_id} HTTP {response.status_code}",
                snippet=snippet(response.content),
            )

        location = response.headers["Location"]
        log.debug("menu_selected", menu_id=menu_id, location=location)
        return location


def parse_menu_children(markup: str | bytes, menu_id: str) -> list[MenuNode]:
    """Read the children of `menu_id` from a sidebar partial response."""
    html = get_partial_update(markup, SIDEBAR_UPDATE_ID)
    if html is None:
        raise ParseError(
            "Sidebar missing from partial response",
            context=f'update[id="{SIDEBAR_UPDATE_ID}"]',
            snippet=snippet(markup),
        )

    soup = BeautifulSoup(html, "lxml")
    parent = soup.find("li", class_=menu_id)
    if parent is None:
        raise ParseError(
            "Submenu not found in sidebar",
            context=f"li.{menu_id}",
            snippet=snippet(html),
        )

    submenu = parent.find("ul", recursive=False)
    if submenu is None:
        return []

    children: list[MenuNode] = []
    for index, item in enumerate(submenu.find_all("li", recursive=False)):
        children.append(_parse_menu_item(item, f"li.{menu_id} > ul > li[{index}]"))
    return children


def _parse_menu_item(item: Tag, where: str) -> MenuNode:
    link = item.find("a", recursive=False)
    label = link.find("span", class_="ui-menuitem-text") if link else None
    if label is None:
        raise ParseError(
            "Menu entry has no label",
            context=f"{where} > a > span.ui-menuitem-text",
            snippet=snippet(str(item)),
        )
    name = " ".join(_PLANNING_WORD_RE.sub("", label.get_text()).split())

    classes = item.get("class", [])
    if "ui-menu-parent" in classes:
        node_id = next((c for c in classes if c.startswith("submenu_")), None)
        if node_id is None:
            raise ParseError(
                "Parent menu entry has no submenu id",
                context=f"{where}[class*=submenu_]",
                snippet=snippet(str(item)),
            )
        return MenuNode(id=node_id, name=name, is_parent=True)

    match = _MENU_ID_RE.search(link.get("onclick", ""))
    if match is None:
        raise ParseError(
            "Menu entry has no menu id",
            context=f"{where} > a[onclick] {MENU_ID_FIELD}",
            snippet=snippet(str(item)),
        )
    return MenuNode(id=match.group(1), name=name)
