import unittest

from models.document_tree import (
    Equation,
    EquationFunction,
    GlyphType,
    Image,
    ListItem,
    Paragraph,
    Table,
    TableCell,
    Text,
    TextRun,
    TextStyle,
    VerticalAlign,
)
from core.html_renderer import (
    HtmlBuffer,
    ImageSink,
    RenderContext,
    append_block,
    escape_html,
    render_children,
    render_image,
    render_styled_text,
    render_table,
)

BOLD = TextStyle(bold=True)


class TestStyledText(unittest.TestCase):

    def test_escaping(self):
        self.assertEqual(escape_html("<b>&\"'"), "&lt;b&gt;&amp;&quot;&#x27;")
        self.assertEqual(render_styled_text(Text.plain("1 < 2")), "1 &lt; 2")

    def test_wrapping_order(self):
        style = TextStyle(bold=True, italic=True, underline=True, strikethrough=True,
                          vertical_align=VerticalAlign.SUPERSCRIPT)
        self.assertEqual(
            render_styled_text(Text.plain("x", style)),
            "<b><i><u><s><sup>x</sup></s></u></i></b>",
        )

    def test_link(self):
        style = TextStyle(link_url="https://example.com/?a=1&b=2")
        self.assertEqual(
            render_styled_text(Text.plain("site", style)),
            '<a href="https://example.com/?a=1&amp;b=2" target="_blank" '
            'rel="noopener noreferrer">site</a>',
        )

    def test_link_target_quotes_are_escaped(self):
        html = render_styled_text(Text.plain("x", TextStyle(link_url='x" onclick="y')))
        self.assertTrue(html.startswith('<a href="x&quot; onclick=&quot;y" target="_blank"'))
        self.assertNotIn('onclick="', html)

        html = render_styled_text(Text.plain("x", TextStyle(link_url="x' onclick='y")))
        self.assertIn('href="x&#x27; onclick=&#x27;y"', html)

    def test_adjacent_runs_with_same_style_are_merged(self):
        text = Text(runs=[TextRun("ab", BOLD), TextRun("cd", BOLD), TextRun("e")])
        self.assertEqual(render_styled_text(text), "<b>abcd</b>e")

    def test_newline_becomes_br(self):
        self.assertEqual(render_styled_text(Text.plain("a\nb")), "a<br/>b")

    def test_marker_stripped_from_first_segment_only(self):
        text = Text(runs=[TextRun("<> "), TextRun("Blue", BOLD)])
        context = RenderContext(strip_correct_marker=True)
        self.assertEqual(render_styled_text(text, context), "<b>Blue</b>")

        text = Text(runs=[TextRun("Blue "), TextRun("<> x", BOLD)])
        context = RenderContext(strip_correct_marker=True)
        self.assertEqual(render_styled_text(text, context), "Blue <b>&lt;&gt; x</b>")


class TestImages(unittest.TestCase):

    def test_filenames_count_per_question(self):
        sink = ImageSink()
        self.assertEqual(sink.add("q1", b"a", "image/png"), "q1_img_001.png")
        self.assertEqual(sink.add("q1", b"b", "image/jpeg"), "q1_img_002.jpg")
        self.assertEqual(sink.add("q2", b"c", "image/gif"), "q2_img_001.gif")
        self.assertEqual(sink.add("q2", b"d", "image/bmp"), "q2_img_002.png")
        self.assertEqual(len(sink.images), 4)

    def test_img_tag_keeps_only_known_dimensions(self):
        sink = ImageSink()
        html = render_image(Image(data=b"x", width=120.4), sink, "q1")
        self.assertEqual(
            html,
            '<img src="images/q1_img_001.png" width="120" '
            'style="max-width: 100%; height: auto;" />',
        )
        self.assertEqual(sink.images["q1_img_001.png"], b"x")


class TestBlocks(unittest.TestCase):

    def setUp(self):
        self.sink = ImageSink()

    def test_equation_inline(self):
        paragraph = Paragraph(children=[
            Text.plain("x = "),
            Equation(children=[EquationFunction("frac", [Text.plain("1"), Text.plain("2")])]),
        ])
        self.assertEqual(render_children(paragraph, self.sink, "q1"), "x = $\\frac{1}{2}$")

    def test_list_grouping(self):
        buffer = HtmlBuffer()
        for block in [
            ListItem.of_text("a", GlyphType.BULLET),
            ListItem.of_text("b", GlyphType.HOLLOW_BULLET),
            ListItem.of_text("c", GlyphType.NUMBER),
            ListItem.of_text("d", GlyphType.LATIN_UPPER),
            Paragraph.of_text("after"),
            ListItem.of_text("e", GlyphType.ROMAN_LOWER),
        ]:
            append_block(buffer, block, self.sink, "q1")
        self.assertEqual(
            buffer.render(),
            "<ul><li>a</li><li>b</li></ul>"
            '<ol type="1"><li>c</li></ol>'
            '<ol type="A"><li>d</li></ol>'
            "<p>after</p>"
            '<ol type="i"><li>e</li></ol>',
        )

    def test_nested_lists(self):
        buffer = HtmlBuffer()
        for block in [
            ListItem.of_text("a", GlyphType.BULLET),
            ListItem(children=[Text.plain("a1")], glyph_type=GlyphType.LATIN_LOWER, nesting_level=1),
            ListItem(children=[Text.plain("a2")], glyph_type=GlyphType.LATIN_LOWER, nesting_level=1),
            ListItem.of_text("b", GlyphType.BULLET),
        ]:
            append_block(buffer, block, self.sink, "q1")
        self.assertEqual(
            buffer.render(),
            '<ul><li>a<ol type="a"><li>a1</li><li>a2</li></ol></li><li>b</li></ul>',
        )

    def test_nesting_level_does_not_skip_levels(self):
        buffer = HtmlBuffer()
        buffer.add_list_item(GlyphType.NUMBER, "deep", nesting_level=3)
        append_block(buffer, Paragraph.of_text("p"), self.sink, "q1")
        self.assertEqual(buffer.render(), '<ol type="1"><li>deep</li></ol><p>p</p>')

    def test_empty_paragraph_is_skipped(self):
        buffer = HtmlBuffer()
        append_block(buffer, Paragraph.of_text(""), self.sink, "q1")
        self.assertEqual(buffer.render(), "")

    def test_block_image_is_wrapped_in_paragraph(self):
        buffer = HtmlBuffer()
        append_block(buffer, Image(data=b"x"), self.sink, "q3")
        self.assertEqual(
            buffer.render(),
            '<p><img src="images/q3_img_001.png" style="max-width: 100%; height: auto;" /></p>',
        )

    def test_nested_table(self):
        inner = Table(rows=[[TableCell(blocks=[Paragraph.of_text("b")])]])
        table = Table(rows=[[
            TableCell(blocks=[Paragraph.of_text("a")]),
            TableCell(blocks=[inner]),
        ]])
        self.assertEqual(
            render_table(table, self.sink, "q1"),
            "<table><tr><td>a<br/></td>"
            "<td><table><tr><td>b<br/></td></tr></table></td></tr></table>",
        )

    def test_table_cell_lists(self):
        table = Table(rows=[[TableCell(blocks=[
            ListItem.of_text("one", GlyphType.NUMBER),
            ListItem.of_text("two", GlyphType.NUMBER),
        ])]])
        self.assertEqual(
            render_table(table, self.sink, "q1"),
            '<table><tr><td><ol type="1"><li>one</li><li>two</li></ol></td></tr></table>',
        )


if __name__ == "__main__":
    unittest.main()
