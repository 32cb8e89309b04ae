from escope.formatting import (
    MIN_REPORT_WIDTH,
    ReportSection,
    format_report,
    format_table,
)


def test_format_table_empty():
    assert format_table(["a", "b"], []) == "No data found\n"


def test_format_table_single_cell():
    assert format_table(["a"], [["xy"]]) == "+----+\n| a  |\n+----+\n| xy |\n+----+\n"


def test_format_table_lines_are_aligned():
    output = format_table(["Name", "Value"], [["alpha", "1"], ["b", "123456"]])
    lines = output.splitlines()
    assert len({len(line) for line in lines}) == 1
    assert lines[1].startswith("| Name ")
    assert sum(line.startswith("+") for line in lines) == 3


def test_format_table_total_row_gets_extra_border():
    output = format_table(["Name", "Count"], [["a", "1"], ["Total", "1"]])
    lines = output.splitlines()
    assert sum(line.startswith("+") for line in lines) == 4
    total_position = next(i for i, line in enumerate(lines) if "Total" in line)
    assert lines[total_position - 1].startswith("+")


def test_format_table_short_row_is_padded():
    output = format_table(["a", "b"], [["only"]])
    lines = output.splitlines()
    assert len({len(line) for line in lines}) == 1
    assert "only" in output


def test_format_report_minimum_width():
    output = format_report("TITLE", [ReportSection("S", ["item"])])
    lines = output.splitlines()
    assert len(lines[0]) == MIN_REPORT_WIDTH + 4
    assert len({len(line) for line in lines}) == 1


def test_format_report_content():
    output = format_report(
        "TITLE",
        [
            ReportSection("FIRST", ["one", "two"]),
            ReportSection("EMPTY", []),
            ReportSection("SECOND", ["three"]),
        ],
    )
    assert "TITLE" in output.splitlines()[1]
    assert "• one" in output
    assert "• three" in output
    assert "EMPTY" not in output
    assert output.index("FIRST") < output.index("SECOND")


def test_format_report_grows_for_long_items():
    long_item = "x" * 120
    output = format_report("T", [ReportSection("S", [long_item])])
    lines = output.splitlines()
    assert len({len(line) for line in lines}) == 1
    assert any(long_item in line for line in lines)