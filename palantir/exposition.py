"""
Text exposition of metric samples.

Every sample is rendered as one newline-terminated line:

    name{host="h", label="value"} number

The host label always comes first, followed by the sample's own labels
in the order given.
"""

import io


def escape_label(value: str) -> str:
    """Escape a label value for the text format."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_value(value: int | float, precision: int | None = None) -> str:
    """Format a sample value: integers as decimal, fractions at fixed precision."""
    if precision is not None:
        return f"{value:.{precision}f}"
    return str(int(value))


class ExpositionWriter:
    """
    Accumulates rendered lines for one scrape.

    A writer is created per request and discarded after rendering.
    """

    def __init__(self, hostname: str):
        self.hostname = hostname
        self._host_label = f'host="{escape_label(hostname)}"'
        self._buffer = io.StringIO()
        self._count = 0

    def sample(
        self,
        name: str,
        value: int | float,
        precision: int | None = None,
        **labels: str | int,
    ) -> None:
        """
        Append one sample line.

        Args:
            name: Metric family name
            value: Sample value
            precision: Fixed decimal places for fractional families
            **labels: Extra labels after the host label
        """
        parts = [self._host_label]
        for key, label in labels.items():
            parts.append(f'{key}="{escape_label(str(label))}"')

        self._buffer.write(f"{name}{{{', '.join(parts)}}} {format_value(value, precision)}\n")
        self._count += 1

    def __len__(self) -> int:
        return self._count

    def getvalue(self) -> str:
        return self._buffer.getvalue()
