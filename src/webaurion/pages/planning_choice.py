"""ChoixPlanningPage - the favourite plannings (class groups) table.

Reached by selecting a group planning leaf in the sidebar. The table is a
PrimeFaces datatable:
  <div id="form:dataTableFavori" class="ui-datatable">
    <table><tbody>
      <tr data-rk="1234" class="ui-widget-content ..."><td>...</td><td><span>CIR3 Groupe A</span></td></tr>
    </tbody></table>
  </div>
An empty table renders a single row without data-rk.
"""

from bs4 import BeautifulSoup

from webaurion.errors import ParseError
from webaurion.logging import get_logger
from webaurion.models import ClassGroup
from webaurion.pages.base import AurionPage, snippet

log = get_logger(__name__)


class ChoixPlanningPage(AurionPage):
    URL_PATH = "/faces/ChoixPlanning.xhtml"

    GROUPS_TABLE = "form:dataTableFavori"
    GROUP_ROW = "tbody tr[data-rk]"

    def extract_groups(self) -> list[ClassGroup]:
        response = self._get()
        groups = parse_class_groups(response.content, self.GROUPS_TABLE, self.GROUP_ROW)
        log.info("class_groups_extracted", groups=len(groups))
        return groups


def parse_class_groups(
    html: str | bytes,
    table_id: str = ChoixPlanningPage.GROUPS_TABLE,
    row_selector: str = ChoixPlanningPage.GROUP_ROW,
) -> list[ClassGroup]:
    """Parse the groups table; the group name is the last cell's last element."""
    soup = BeautifulSoup(html, "lxml")
    table = soup.find("div", id=table_id)
    if table is None:
        raise ParseError(
            "Class groups table not found",
            context=f'div[id="{table_id}"]',
            snippet=snippet(html),
        )

    groups: list[ClassGroup] = []
    for index, row in enumerate(table.select(row_selector)):
        try:
            group_id = int(row["data-rk"])
        except ValueError as e:
            raise ParseError(
                "Class group row has a non-numeric id",
                context=f"{row_selector}[{index}] data-rk={row['data-rk']!r}",
            ) from e

        cells = row.find_all("td", recursive=False)
        if not cells:
            raise ParseError(
                "Class group row has no cells",
                context=f"{row_selector}[{index}] > td",
                snippet=snippet(str(row)),
            )
        last = cells[-1]
        elements = last.find_all(True, recursive=False)
        name = (elements[-1] if elements else last).get_text(strip=True)
        groups.append(ClassGroup(id=group_id, name=name))

    return groups
