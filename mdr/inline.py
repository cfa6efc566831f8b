"""Inline formatter: one line of markdown-ish text to styled runs."""

from .model import StyledLine, StyledRun, TextAttributes, image_label

CODE = TextAttributes(color_class="code")
BOLD = TextAttributes(bold=True)
ITALIC = TextAttributes(italic=True)
STRIKE = TextAttributes(strikethrough=True, color_class="dim")
LINK = TextAttributes(underline=True, color_class="link")
IMAGE = TextAttributes(italic=True, color_class="image")


def _span_end(line: str, start: int, marker: str) -> tuple[int, int]:
    """Return (content_end, resume_index) for a span closed by marker.

    An unterminated span runs to the end of the line.
    """
    end = line.find(marker, start)
    if end == -1:
        return len(line), len(line)
    return end, end + len(marker)


def format_inline(line: str) -> StyledLine:
    """Parse bold, italic, strikethrough, code, links and image markers.

    Link and image targets are dropped; only the label is kept.
    """
    runs: list[StyledRun] = []
    plain: list[str] = []
    i = 0
    n = len(line)

    def flush():
        if plain:
            runs.append(StyledRun(''.join(plain)))
            plain.clear()

    while i < n:
        c = line[i]
        nxt = line[i + 1] if i + 1 < n else ''

        if c == '`':
            flush()
            end, resume = _span_end(line, i + 1, '`')
            runs.append(StyledRun(line[i + 1:end], CODE))
            i = resume
        elif c == '*' and nxt == '*':
            flush()
            end, resume = _span_end(line, i + 2, '**')
            runs.append(StyledRun(line[i + 2:end], BOLD))
            i = resume
        elif c in '*_':
            flush()
            end, resume = _span_end(line, i + 1, c)
            runs.append(StyledRun(line[i + 1:end], ITALIC))
            i = resume
        elif c == '~' and nxt == '~':
            flush()
            end, resume = _span_end(line, i + 2, '~~')
            runs.append(StyledRun(line[i + 2:end], STRIKE))
            i = resume
        elif c == '!' and nxt == '[':
            close = line.find(']', i + 2)
            if close != -1 and line[close + 1:close + 2] == '(':
                flush()
                runs.append(StyledRun(image_label(line[i + 2:close]), IMAGE))
                _, i = _span_end(line, close + 2, ')')
            else:
                # Malformed marker: the '[' branch re-emits the rest verbatim
                plain.append(c)
                i += 1
        elif c == '[':
            close = line.find(']', i + 1)
            if close == -1:
                plain.append(line[i:])
                i = n
            elif line[close + 1:close + 2] == '(':
                flush()
                runs.append(StyledRun(line[i + 1:close], LINK))
                _, i = _span_end(line, close + 2, ')')
            else:
                plain.append(line[i:close + 1])
                i = close + 1
        else:
            plain.append(c)
            i += 1

    flush()
    return StyledLine(tuple(runs))
