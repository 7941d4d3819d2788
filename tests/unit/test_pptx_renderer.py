"""Test PowerPoint output by reopening the generated file."""

import base64
import io

import pytest
from lxml import etree
from PIL import Image
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.util import Inches

from grid_slides.layout_engine import Coordinates, layout_slide
from grid_slides.models import AnimationSpec, Element, GridConfig, GridPosition, ListItem, Slide, StyleOptions, TableData
from grid_slides.plugins import PluginRegistry
from grid_slides.pptx_renderer import PPTXRenderer, calculate_centered_fit, flatten_list_items


def _render(tmp_path, elements, grid=GridConfig(12, 9), renderer=None, **kwargs):
    renderer = renderer or PPTXRenderer(base_dir=tmp_path, registry=PluginRegistry())
    layout = layout_slide(Slide(elements=elements, index=1, grid=grid))
    output = tmp_path / "out.pptx"
    renderer.render([layout], output, **kwargs)
    return Presentation(str(output))


def _texts(slide):
    return [shape.text_frame.text for shape in slide.shapes if shape.has_text_frame and shape.text_frame.text]


def test_centered_fit_wide_image():
    fit = calculate_centered_fit(200, 100, Coordinates(0, 0, 4, 4))
    assert fit == Coordinates(0, 1, 4, 2)


def test_centered_fit_tall_image():
    fit = calculate_centered_fit(100, 200, Coordinates(1, 1, 4, 4))
    assert fit == Coordinates(2, 1, 2, 4)


def test_flatten_list_items():
    items = [ListItem('a', children=[ListItem('a1', 1)]), ListItem('b')]
    assert [i.text for i in flatten_list_items(items)] == ['a', 'a1', 'b']


def test_slide_size_and_title(tmp_path):
    prs = _render(tmp_path, [Element(type='heading', content='Hello', level=1)], title="Deck")
    assert prs.slide_width == Inches(10)
    assert prs.slide_height == Inches(6.25)
    assert prs.core_properties.title == "Deck"
    assert len(prs.slides) == 1


def test_empty_layouts_produce_one_blank_slide(tmp_path):
    output = tmp_path / "empty.pptx"
    PPTXRenderer(registry=PluginRegistry()).render([], output)
    assert len(Presentation(str(output)).slides) == 1


def test_shape_position_matches_grid(tmp_path):
    prs = _render(tmp_path, [Element(type='paragraph', content='Body', position=GridPosition(1, 6, 1, 9))])
    shape = prs.slides[0].shapes[0]
    assert shape.left == Inches(0.5)
    assert shape.top == Inches(0.5)
    assert shape.width == Inches(4.5)
    assert abs(shape.height - Inches(5.25)) <= 1


def test_text_elements(tmp_path):
    elements = [
        Element(type='heading', content='Title', level=1),
        Element(type='paragraph', content='Body text', style=StyleOptions(classes=['center'])),
        Element(type='list', content=[ListItem('One'), ListItem('Two', is_ordered=False)]),
        Element(type='code', content="x = 1\ny = 2"),
        Element(type='blockquote', content='Wise words'),
    ]
    texts = _texts(_render(tmp_path, elements).slides[0])
    assert 'Title' in texts
    assert 'Body text' in texts
    assert '• One\n• Two' in texts
    assert 'x = 1\ny = 2' in texts
    assert 'Wise words' in texts


def test_ordered_list_numbering(tmp_path):
    items = [
        ListItem('First', is_ordered=True, children=[ListItem('Sub', 1, is_ordered=True)]),
        ListItem('Second', is_ordered=True),
    ]
    texts = _texts(_render(tmp_path, [Element(type='list', content=items)]).slides[0])
    assert '1. First\n1. Sub\n2. Second' in texts


def test_table(tmp_path):
    table_data = TableData(headers=['A', 'B'], rows=[['1', '2'], ['3']])
    prs = _render(tmp_path, [Element(type='table', content=table_data)])
    tables = [s for s in prs.slides[0].shapes if s.has_table]
    assert len(tables) == 1
    table = tables[0].table
    assert len(table.rows) == 3
    assert len(table.columns) == 2
    assert table.cell(0, 0).text == 'A'
    assert table.cell(2, 1).text == ''


def test_image_is_fitted(tmp_path):
    Image.new('RGB', (200, 100), 'red').save(tmp_path / 'wide.png')
    prs = _render(tmp_path, [Element(type='image', content='wide.png', position=GridPosition(1, 6, 1, 9))])
    pictures = [s for s in prs.slides[0].shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE]
    assert len(pictures) == 1
    picture = pictures[0]
    # the 4.5in wide cell area limits the width; height follows the aspect ratio
    assert picture.width == Inches(4.5)
    assert abs(picture.height - Inches(2.25)) <= 1


def test_missing_image_placeholder(tmp_path):
    texts = _texts(_render(tmp_path, [Element(type='image', content='nope.png')]).slides[0])
    assert texts == ['[Missing image: nope.png]']


def test_missing_video_placeholder(tmp_path):
    texts = _texts(_render(tmp_path, [Element(type='video', content='clip.mp4', alt_text='Demo')]).slides[0])
    assert texts == ['▶ Demo\nclip.mp4']


def test_mermaid_without_image_falls_back_to_code(tmp_path):
    texts = _texts(_render(tmp_path, [Element(type='mermaid', content='graph LR\n  A-->B')]).slides[0])
    assert texts == ['graph LR\n  A-->B']


def test_mermaid_with_rendered_image(tmp_path):
    png = tmp_path / 'diagram.png'
    Image.new('RGB', (100, 100), 'white').save(png)
    prs = _render(tmp_path, [Element(type='mermaid', content='graph LR')],
                  mermaid_images={'graph LR': png})
    assert [s.shape_type for s in prs.slides[0].shapes] == [MSO_SHAPE_TYPE.PICTURE]


def test_plugin_generator_and_hook(tmp_path):
    registry = PluginRegistry()
    calls = []
    registry.register_element_generator('custom', lambda element, slide, ctx: calls.append((element.content, ctx.coordinates)))
    registry.add_hook('on_generate', lambda prs: calls.append('hook'))
    renderer = PPTXRenderer(registry=registry)
    _render(tmp_path, [Element(type='custom', content='payload', position=GridPosition(1, 12, 1, 9))], renderer=renderer)
    content, coords = calls[0]
    assert content == 'payload'
    assert (coords.x, coords.y, coords.w) == (0.5, 0.5, 9.0)
    assert coords.h == pytest.approx(5.25)
    assert calls[1] == 'hook'


def test_unknown_type_renders_text(tmp_path):
    texts = _texts(_render(tmp_path, [Element(type='mystery', content='fallback')]).slides[0])
    assert texts == ['fallback']


def test_dark_theme_background(tmp_path):
    renderer = PPTXRenderer(theme='dark', registry=PluginRegistry())
    prs = _render(tmp_path, [Element(type='heading', content='Dark', level=1)], renderer=renderer)
    fill = prs.slides[0].background.fill
    assert str(fill.fore_color.rgb) == '1A1A1A'


def test_unknown_theme_rejected():
    with pytest.raises(ValueError):
        PPTXRenderer(theme='neon')


def _png_bytes(size=(200, 100)):
    stream = io.BytesIO()
    Image.new('RGB', size, 'blue').save(stream, format='PNG')
    return stream.getvalue()


def test_local_video_is_embedded(tmp_path):
    (tmp_path / 'clip.mp4').write_bytes(b'\x00\x00\x00\x18ftypmp42')
    prs = _render(tmp_path, [Element(type='video', content='clip.mp4', alt_text='Demo',
                                     position=GridPosition(1, 6, 1, 4))])
    shapes = list(prs.slides[0].shapes)
    assert [s.shape_type for s in shapes] == [MSO_SHAPE_TYPE.MEDIA]
    assert shapes[0].left == Inches(0.5)
    assert shapes[0].width == Inches(4.5)
    assert any(rel.reltype.endswith('/video') for rel in prs.slides[0].part.rels.values())


def test_remote_image_is_fetched(tmp_path, monkeypatch):
    requested = []

    def fake_fetch(url, **kwargs):
        requested.append(url)
        return _png_bytes()

    monkeypatch.setattr('grid_slides.pptx_renderer.fetch_asset', fake_fetch)
    prs = _render(tmp_path, [Element(type='image', content='https://example.com/chart.png',
                                     position=GridPosition(1, 6, 1, 9))])
    assert requested == ['https://example.com/chart.png']
    pictures = [s for s in prs.slides[0].shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE]
    assert len(pictures) == 1
    assert pictures[0].width == Inches(4.5)


def test_remote_image_failure_uses_placeholder(tmp_path, monkeypatch):
    def failing_fetch(url, **kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr('grid_slides.pptx_renderer.fetch_asset', failing_fetch)
    texts = _texts(_render(tmp_path, [Element(type='image', content='https://example.com/chart.png')]).slides[0])
    assert texts == ['[Missing image: chart.png]']


def test_data_uri_image(tmp_path):
    uri = "data:image/png;base64," + base64.b64encode(_png_bytes((10, 10))).decode('ascii')
    prs = _render(tmp_path, [Element(type='image', content=uri)])
    assert [s.shape_type for s in prs.slides[0].shapes] == [MSO_SHAPE_TYPE.PICTURE]


_P = {'p': 'http://schemas.openxmlformats.org/presentationml/2006/main'}


def _xpath(element, path):
    return etree.XPath(path, namespaces=_P)(element)


def _timing(slide):
    return _xpath(slide._element, './p:timing')


def test_no_timing_without_animations(tmp_path):
    prs = _render(tmp_path, [Element(type='paragraph', content='Still')])
    assert _timing(prs.slides[0]) == []


def test_animation_timing_is_written(tmp_path):
    fade = AnimationSpec(type='fade', duration_ms=800, delay_ms=200, trigger='onClick')
    elements = [
        Element(type='heading', content='Static', level=1, position=GridPosition(1, 12, 1, 1)),
        Element(type='paragraph', content='Animated', position=GridPosition(1, 12, 2, 3),
                style=StyleOptions(animation=fade)),
    ]
    slide = _render(tmp_path, elements).slides[0]
    assert len(_timing(slide)) == 1

    animated = next(s for s in slide.shapes if s.has_text_frame and s.text_frame.text == 'Animated')
    targets = {int(spid) for spid in _xpath(slide._element, './/p:spTgt/@spid')}
    assert targets == {animated.shape_id}

    effect = _xpath(slide._element, './/p:cTn[@presetClass="entr"]')[0]
    assert effect.get('nodeType') == 'clickEffect'
    assert effect.get('presetID') == '10'
    assert _xpath(effect, './p:stCondLst/p:cond/@delay') == ['200']
    assert _xpath(slide._element, './/p:animEffect/@filter') == ['fade']
    assert _xpath(slide._element, './/p:animEffect/p:cBhvr/p:cTn/@dur') == ['800']


def test_after_previous_starts_when_previous_ends(tmp_path):
    elements = [
        Element(type='paragraph', content='First', position=GridPosition(1, 12, 1, 2),
                style=StyleOptions(animation=AnimationSpec(type='wipe', duration_ms=1000, direction='left'))),
        Element(type='paragraph', content='Second', position=GridPosition(1, 12, 3, 4),
                style=StyleOptions(animation=AnimationSpec(type='appear', trigger='afterPrevious'))),
    ]
    slide = _render(tmp_path, elements).slides[0]

    effects = _xpath(slide._element, './/p:cTn[@presetClass="entr"]')
    assert [e.get('nodeType') for e in effects] == ['clickEffect', 'afterEffect']
    # both effects sit in one click group, the second step offset by the first's duration
    step_delays = [
        _xpath(e.getparent().getparent().getparent(), './p:stCondLst/p:cond/@delay')[0] for e in effects
    ]
    assert step_delays == ['0', '1000']
    assert _xpath(slide._element, './/p:animEffect/@filter') == ['wipe(left)']


def test_animated_video_keeps_its_media_timing(tmp_path):
    (tmp_path / 'clip.mp4').write_bytes(b'\x00\x00\x00\x18ftypmp42')
    elements = [
        Element(type='video', content='clip.mp4', position=GridPosition(1, 6, 1, 4),
                style=StyleOptions(animation=AnimationSpec(type='fade'))),
    ]
    slide = _render(tmp_path, elements).slides[0]

    timing = _timing(slide)
    assert len(timing) == 1
    assert len(_xpath(timing[0], './/p:video')) == 1
    assert len(_xpath(timing[0], './/p:seq/p:cTn[@nodeType="mainSeq"]')) == 1
    ids = _xpath(timing[0], './/p:cTn/@id')
    assert len(ids) == len(set(ids))
