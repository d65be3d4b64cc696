"""Caption layout: word wrapping and drawtext filters for burned-in subtitles."""

from giftrim.settings import RenderConfig


def wrap_caption(text: str, max_chars: int = 30) -> list[str]:
    """Greedy word wrap.

    Words are appended to the current line while it stays within
    ``max_chars``; otherwise the word starts a new line. A single word longer
    than the limit gets a line of its own.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and len(candidate) > max_chars:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def _escape(value: str, specials: str) -> str:
    return "".join("\\" + c if c in specials else c for c in value)


def escape_drawtext(value: str) -> str:
    """Escape an option value for use inside a -filter_complex graph.

    Two levels: the filter option parser, then the filtergraph parser.
    """
    return _escape(_escape(value, "\\':"), "\\'[],;")


def caption_filters(lines: list[str], config: RenderConfig) -> list[str]:
    """One drawtext per line, centered, stacked upward from the bottom edge."""
    if config.fontfile:
        font_opt = f"fontfile={escape_drawtext(config.fontfile)}"
    else:
        font_opt = f"font={escape_drawtext(config.font)}"

    step = config.font_size + 2 * config.box_border + config.line_spacing
    n = len(lines)
    filters: list[str] = []
    for i, line in enumerate(lines):
        offset = config.bottom_margin + config.box_border + config.font_size + (n - 1 - i) * step
        filters.append(
            "drawtext="
            f"{font_opt}:"
            f"text={escape_drawtext(line)}:"
            "expansion=none:"
            f"fontsize={config.font_size}:"
            f"fontcolor={config.font_color}:"
            f"box=1:boxcolor={config.box_color}:boxborderw={config.box_border}:"
            "x=(w-text_w)/2:"
            f"y=h-{offset}"
        )
    return filters


def gif_filter_graph(caption: str | None, config: RenderConfig) -> str:
    """Build the full GIF filter graph, overlaying ``caption`` when present."""
    chain = [f"fps={config.fps}", f"scale={config.width}:-2:flags=lanczos"]
    if caption:
        chain += caption_filters(wrap_caption(caption, config.max_line_chars), config)
    return ",".join(chain) + ",split[a][b];[a]palettegen[p];[b][p]paletteuse"
