"""Fixed-width text rendering of query results and of the whole catalog.

The same text is shown on screen and written by 'save', so a saved file looks
exactly like what 'exit' prints.
"""

import os

from config import COLUMN_WIDTH
from errors import StorageError


def render_table(headers: list[str], rows: list[list], width: int = COLUMN_WIDTH) -> str:
    """Render headers and rows as fixed-width fields.

    Args:
        headers (list[str]): Column names, in display order.
        rows (list[list]): Row-major cells; anything with a str() form.
        width (int): Minimum width of every field.

    Returns:
        str: The rendered block, without a trailing newline.
    """
    # Helper function to format a single line of cells
    def format_row(cells) -> str:
        return "| " + " | ".join(str(cell).ljust(width) for cell in cells) + " |"

    border = "+-" + "-+-".join("-" * width for _ in headers) + "-+"
    lines = [border, format_row(headers), border]
    lines.extend(format_row(row) for row in rows)
    lines.append(border)
    return "\n".join(lines)


def render_result(result_set, width: int = COLUMN_WIDTH) -> str:
    """Render a SELECT result, or '(empty set)' when no columns were chosen."""
    if not result_set.columns:
        return "(empty set)"
    return render_table(result_set.columns, result_set.rows, width)


def render_snapshot(schema, width: int = COLUMN_WIDTH) -> str:
    """Render every table of the catalog: a title line, then its rows.

    Tables come out sorted by name and columns in catalog order.
    """
    if not len(schema.tables):
        return "(no tables)"

    blocks = []
    for name, table in schema.tables.items():
        title = f"Table: {name}"
        if table.primary_key:
            title += f"  [primary key: {', '.join(table.primary_key)}]"
        headers = table.column_names
        rows = [[row[column] for column in headers] for row in table.select_all()]
        blocks.append(title + "\n" + render_table(headers, rows, width))
    for fk in schema.foreign_keys:
        blocks.append(f"Foreign key: {fk}")
    return "\n\n".join(blocks)


def save_snapshot(schema, path: str, width: int = COLUMN_WIDTH):
    """Write the snapshot render of the catalog to path.

    Raises:
        StorageError: If the file cannot be opened or written.
    """
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_snapshot(schema, width) + "\n")
    except OSError as error:
        raise StorageError(f"Cannot save to '{path}': {error.strerror or error}") from error
