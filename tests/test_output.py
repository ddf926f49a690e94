import io

from rich.console import Console

from klogs.utils.colors import DisplayColor, colored
from klogs.utils.output import ConsoleSink

LINE = f"{colored('p1', DisplayColor(200, 210, 220))} | GET /api/[v1] 200"


def test_plain_output_drops_colors():
    buffer = io.StringIO()
    ConsoleSink(Console(file=buffer, force_terminal=False, width=20)).write_line(LINE)

    assert buffer.getvalue() == "p1 | GET /api/[v1] 200\n"


def test_terminal_output_keeps_colors():
    buffer = io.StringIO()
    ConsoleSink(Console(file=buffer, force_terminal=True, color_system="truecolor", no_color=False)).write_line(LINE)

    output = buffer.getvalue()
    assert "\x1b[38;2;200;210;220m" in output
    assert "GET /api/[v1] 200" in output
