"""Frame painting for the browser.

Everything here is a pure function of the catalog, the navigation state and
the terminal size, so frames can be built and inspected without a tty.
"""

from dataclasses import dataclass, field
from datetime import datetime

from blessed import Terminal

from ..model import ServiceRecord
from ..navigation import Navigator

# Rows used by the tab bar, the two separators and the footer
CHROME_ROWS = 4
MIN_LIST_ROWS = 1

HELP_LINES = [
    "",
    " Navigation:",
    "   Up/Down or j/k        - Navigate services list",
    "   Left/Right or h/l     - Switch between service types",
    "   PageUp/PageDown       - Scroll services list by page",
    "   b/f/Space             - Scroll services list by page",
    "   Ctrl-U/Ctrl-D         - Scroll services list by page",
    "   Home/End or g/G       - Jump to first/last service",
    "",
    " Actions:",
    "   d                     - Remove dead services",
    "   s                     - Show/hide dead services",
    "   c                     - Clear error message",
    "   ?                     - Show this help",
    "   q or Ctrl-C           - Quit the application",
    "",
    " Press any key to close this help",
]


@dataclass
class Frame:
    """One painted screen: full-width lines plus positioned overlay text."""

    lines: list[str] = field(default_factory=list)
    overlay: list[tuple[int, int, str]] = field(default_factory=list)  # (x, y, text)


@dataclass
class Layout:
    list_top: int
    list_height: int
    detail_top: int
    detail_height: int
    footer_row: int


def compute_layout(height: int) -> Layout:
    """Split the screen: 40% of the body for the list, the rest for details."""
    body = max(0, height - CHROME_ROWS)
    list_height = max(MIN_LIST_ROWS, body * 2 // 5)
    detail_height = max(0, body - list_height)
    list_top = 2
    detail_top = list_top + list_height + 1
    return Layout(
        list_top=list_top,
        list_height=list_height,
        detail_top=detail_top,
        detail_height=detail_height,
        footer_row=max(detail_top + detail_height, height - 1),
    )


def list_viewport_height(height: int) -> int:
    return compute_layout(height).list_height


def format_service_type(service_type: str) -> str:
    """Shorten a service type for display: "_http._tcp.local." -> "http.tcp"."""
    display = service_type.lstrip("_")
    if display.endswith(".local."):
        display = display[: -len(".local.")]
    display = display.rstrip(".")
    return display.replace("._tcp", ".tcp").replace("._udp", ".udp")


def format_service_row(record: ServiceRecord) -> str:
    host = record.host
    if host.endswith(".local."):
        host = host[: -len(".local.")]
    host = host.rstrip(".")
    address = record.addresses[0] if record.addresses else "<no-addr>"
    if ":" in address:
        address = f"[{address}]"
    return f"{record.name} - {host} - {address}:{record.port}"


def format_timestamp(when: datetime) -> str:
    return when.strftime("%Y-%m-%d %H:%M:%S.%f")


def service_details(record: ServiceRecord) -> list[str]:
    """Plain text lines describing one record."""
    status = "Alive since" if record.alive else "Dead since"
    lines = [
        f"{status}: {format_timestamp(record.last_seen)}",
        "",
        f"Fullname: {record.identity_key}",
        f"Hostname: {record.host}",
        f"Type: {record.service_type}",
        f"Port: {record.port}",
        "",
        "Addresses:",
    ]
    lines.extend(f"  {address}" for address in record.addresses or ["None"])
    lines.append("")
    lines.append("TXT Records:")
    if record.txt:
        lines.extend(f"  {key}={value}" for key, value in record.txt.items())
    else:
        lines.append("  None")
    return lines


def _fit(text: str, width: int) -> str:
    return text[:width].ljust(width)


def _tab_bar(term: Terminal, navigator: Navigator, width: int) -> str:
    catalog = navigator.catalog
    if not catalog.tabs:
        return term.dim + _fit(" Waiting for services...", width) + term.normal

    labels = []
    for service_type in catalog.tabs:
        view = catalog.view(service_type)
        labels.append(f" {format_service_type(service_type)} ({view.alive_count}/{len(view)}) ")

    active = navigator.state.tab_index
    # Slide the window so the active tab is always on screen
    start = 0
    while start < active and sum(len(label) + 1 for label in labels[start : active + 1]) > width:
        start += 1

    parts = []
    used = 0
    for index in range(start, len(labels)):
        label = labels[index]
        if used + len(label) > width:
            break
        view = catalog.view(catalog.tabs[index])
        if index == active:
            parts.append(term.reverse + term.bold + label + term.normal)
        elif not view.searching:
            parts.append(term.dim + label + term.normal)
        else:
            parts.append(label)
        used += len(label) + 1
    return "|".join(parts) + " " * max(0, width - used)


def _service_rows(term: Terminal, navigator: Navigator, layout: Layout, width: int) -> list[str]:
    rows = navigator.rows()
    state = navigator.state
    lines = []
    for offset in range(layout.list_height):
        index = state.scroll_offset + offset
        if index >= len(rows):
            lines.append(" " * width)
            continue
        record = rows[index]
        text = _fit(" " + format_service_row(record), width)
        style = ""
        if not record.alive:
            style += term.magenta + term.italic
        if index == state.row_index:
            style += term.reverse
        lines.append(style + text + term.normal if style else text)
    if not rows:
        lines[0] = term.dim + _fit(" No services", width) + term.normal
    return lines


def _detail_rows(term: Terminal, navigator: Navigator, layout: Layout, width: int) -> list[str]:
    error = navigator.catalog.last_error
    if error:
        text = [f"Error: {error}", "", "Press c to clear"]
        styled = [term.red + _fit(line, width) + term.normal for line in text]
    else:
        record = navigator.selected()
        text = service_details(record) if record else ["No service selected"]
        styled = [_fit(line, width) for line in text]
    styled = styled[: layout.detail_height]
    styled.extend(" " * width for _ in range(layout.detail_height - len(styled)))
    return styled


def _footer(term: Terminal, navigator: Navigator, width: int, dropped: int) -> str:
    catalog = navigator.catalog
    counts = f"{catalog.alive_count} alive, {catalog.dead_count} dead"
    if dropped:
        counts += f", {dropped} events dropped"
    if not navigator.state.show_dead:
        counts += " (dead hidden)"
    hints = " ?: help  q: quit  d: remove dead  s: show/hide dead"
    gap = max(1, width - len(hints) - len(counts) - 1)
    return term.dim + _fit(hints + " " * gap + counts, width) + term.normal


def _separator(title: str, width: int) -> str:
    if not title:
        return "─" * width
    return _fit(f"── {title} " + "─" * width, width)


def _help_overlay(width: int, height: int) -> list[tuple[int, int, str]]:
    box_width = min(width - 2, max(len(line) for line in HELP_LINES) + 4)
    box_height = min(height - 2, len(HELP_LINES) + 2)
    if box_width < 10 or box_height < 3:
        return []
    x = (width - box_width) // 2
    y = (height - box_height) // 2
    inner = box_width - 2
    title = "─ Key Bindings "[:inner]
    overlay = [(x, y, "┌" + title + "─" * (inner - len(title)) + "┐")]
    for row, line in enumerate(HELP_LINES[: box_height - 2], start=1):
        overlay.append((x, y + row, "│" + _fit(line, inner) + "│"))
    overlay.append((x, y + box_height - 1, "└" + "─" * inner + "┘"))
    return overlay


def render_frame(
    term: Terminal,
    navigator: Navigator,
    width: int,
    height: int,
    dropped: int = 0,
) -> Frame:
    """Build a full frame for the current catalog and navigation state."""
    layout = compute_layout(height)
    view = navigator.active_view
    if view is not None:
        list_title = f"Services [{len(navigator.rows())}/{len(view)}]"
    else:
        list_title = "Services"

    lines = [_tab_bar(term, navigator, width), _separator(list_title, width)]
    lines.extend(_service_rows(term, navigator, layout, width))
    lines.append(_separator("Service Details", width))
    lines.extend(_detail_rows(term, navigator, layout, width))
    while len(lines) < layout.footer_row:
        lines.append(" " * width)
    lines.append(_footer(term, navigator, width, dropped))

    frame = Frame(lines=lines[: max(height, 1)])
    if navigator.state.help_visible:
        frame.overlay = [
            (x, y, term.bold + text + term.normal)
            for x, y, text in _help_overlay(width, height)
        ]
    return frame
