"""Shared fixtures: wn-immo style search result markup."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

SEARCH_URL = "http://www.wn-immo.de/suche?typ=miete"


def spec_row(label, value, swap=False):
    label_cell = f'<td class="spec-label">{label}</td>'
    value_cell = f'<td class="spec-value-small">{value}</td>'
    cells = value_cell + label_cell if swap else label_cell + value_cell
    return f"<tr>{cells}</tr>"


def row_markup(
    ad_id="123",
    price="800 EUR",
    rooms="3",
    space="75&nbsp;m&sup2;",
    location="Münster-Mitte",
    available="sofort",
    features=("Balkon", "Einbauk&uuml;che"),
    seller="Privat",
    image="/bilder/123.jpg",
    swap=False,
    permalink=True,
    extra="",
):
    """One result row as the site renders it."""
    href = f"/immobilien/{ad_id}?ref=list&pos=1"
    title = (
        f'<div class="title-holder"><a href="{href}">Schöne Wohnung</a></div>'
        if permalink else '<div class="title-holder">Schöne Wohnung</div>'
    )
    tags = "".join(f"<span>{f}</span>" for f in features)
    specs = "".join([
        spec_row("Kaltmiete", price, swap),
        spec_row("Warmmiete", "950 EUR", swap),
        spec_row("Zimmer", rooms, swap),
        spec_row("Wohnfl&auml;che", space, swap),
        spec_row("Ort", location, swap),
        spec_row("Verfügbar ab", available, swap),
    ])
    image_html = (
        f'<div class="image-wrapper"><a href="{href}"><img src=" {image} " alt="Foto"/></a></div>'
        if image else '<div class="image-wrapper"></div>'
    )
    return f"""
<tr>
  <td>{image_html}</td>
  <td>
    {title}
    <div class="feature-tags">{tags}</div>
    <div class="spec-table-wrapper"><table>{specs}</table></div>
    {extra}
  </td>
  <td class="sellername-wrapper"><div>{seller}</div></td>
</tr>
<!-- ende listEntry -->"""


def page_markup(rows=(), orphan_tbody=True, broken_comment=True, container=True):
    """A complete result page around ``rows``."""
    comment = "<!-------- Ergebnisliste ------>" if broken_comment else "<!-- Ergebnisliste -->"
    container_attr = 'class="searchresults-list"' if container else 'class="content"'
    closing = "</tbody></table>" if orphan_tbody else "</table>"
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Mietwohnungen | wn-immo.de</title>
  <script>if (a && b) {{ go(); }}</script>
</head>
<body>
<div id="header"><a href="/?a=1&b=2">Start</a><br></div>
<div {container_attr}>
<table class="results">
{comment}
{"".join(rows)}
{closing}
</div>
<div id="footer">&copy; 2015 <br> Impressum</div>
</body>
</html>"""


@pytest.fixture
def make_row():
    return row_markup


@pytest.fixture
def make_page():
    return page_markup


@pytest.fixture
def search_url():
    return SEARCH_URL
