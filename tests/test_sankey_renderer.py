from sankey_flow import build_sankey_rows
from sankey_graph import build_sankey_graph
from sankey_renderer import build_sankey_figure, build_year_toggle_figure, write_sankey_html


def test_single_year_figure(sample_pl):
    graph = build_sankey_graph(build_sankey_rows(sample_pl), use_this_year=False)
    fig = build_sankey_figure(graph, "サンプル")
    trace = fig.data[0]
    assert fig.layout.title.text == "サンプル（前期）"
    assert list(trace.node.label) == [n.label for n in graph.nodes]
    assert list(trace.link.value) == [l.value for l in graph.links]
    assert trace.node.x[0] == 0.01


def test_year_toggle_figure(sample_pl):
    fig = build_year_toggle_figure(build_sankey_rows(sample_pl), "サンプル")
    assert len(fig.data) == 2
    assert fig.data[0].visible is True
    assert fig.data[1].visible is False
    buttons = fig.layout.updatemenus[0].buttons
    assert [b.label for b in buttons] == ["当期", "前期"]
    assert buttons[1].args[0] == {"visible": [False, True]}


def test_write_html(sample_pl, tmp_path):
    fig = build_year_toggle_figure(build_sankey_rows(sample_pl), "サンプル")
    path = write_sankey_html(fig, tmp_path / "sankey.html")
    html = path.read_text(encoding="utf-8")
    assert "plotly" in html.lower()
