import unittest

from models.document_tree import (
    GlyphType,
    Image,
    ListItem,
    Paragraph,
    Table,
    TableCell,
    Text,
    TextRun,
    TextStyle,
)
from models.quiz_model import QuizType
from core.quiz_parser import QuizParseError, parse_document, parse_question_tag


def para(text):
    return Paragraph.of_text(text)


def option(text, style=None):
    return ListItem.of_text(text, GlyphType.LATIN_UPPER, style)


class TestParseDocument(unittest.TestCase):

    def test_simple_mcq(self):
        model = parse_document([
            para("[BEGIN#MCQ]"),
            para("[QUESTION#1] Capital of Indonesia?"),
            para("[OPTIONS]"),
            option("<> Jakarta"),
            option("Bandung"),
        ])
        self.assertEqual(model.quiz_type, QuizType.MCQ)
        self.assertEqual(len(model.questions), 1)

        q = model.questions[0]
        self.assertEqual(q.id, "q1")
        self.assertEqual(q.content, "<p>Capital of Indonesia?</p>")
        self.assertIsNone(q.descriptions)
        self.assertEqual([o.text for o in q.options], ["Jakarta", "Bandung"])
        self.assertEqual([o.is_correct for o in q.options], [True, False])
        self.assertEqual([o.id for o in q.options], ["opt_0", "opt_1"])

    def test_numbering_follows_document_order(self):
        model = parse_document([
            para("[BEGIN#ESSAY]"),
            para("[QUESTION#99]"),
            para("first"),
            para("[QUESTION#1]"),
            para("second"),
        ])
        self.assertEqual([q.num for q in model.questions], [1, 2])
        self.assertEqual([q.id for q in model.questions], ["q1", "q2"])
        self.assertEqual([q.label for q in model.questions], [99, 1])

    def test_blank_lines_before_header(self):
        model = parse_document([para(""), para("   "), para("[BEGIN#ESSAY]"), para("[QUESTION]"), para("x")])
        self.assertEqual(model.quiz_type, QuizType.ESSAY)
        self.assertEqual(model.questions[0].content, "<p>x</p>")

    def test_content_before_first_question_is_ignored(self):
        model = parse_document([para("[BEGIN#ESSAY]"), para("intro"), para("[QUESTION]"), para("x")])
        self.assertEqual(model.questions[0].content, "<p>x</p>")

    def test_content_lists_and_descriptions(self):
        model = parse_document([
            para("[BEGIN#MCQ]"),
            para("[QUESTION]"),
            para("Pick one:"),
            ListItem.of_text("hint a", GlyphType.NUMBER),
            ListItem.of_text("hint b", GlyphType.NUMBER),
            para("[OPTIONS]"),
            option("<> yes"),
            para("stray paragraph"),
            option("no"),
            para("[DESCRIPTIONS]"),
            para("Because."),
        ])
        q = model.questions[0]
        self.assertEqual(
            q.content,
            '<p>Pick one:</p><ol type="1"><li>hint a</li><li>hint b</li></ol>',
        )
        self.assertEqual([o.text for o in q.options], ["yes", "no"])
        self.assertEqual(q.descriptions, "<p>Because.</p>")
        self.assertTrue(q.has_descriptions_tag)

    def test_inline_text_is_escaped(self):
        model = parse_document([para("[BEGIN#ESSAY]"), para("[QUESTION] a < b?")])
        self.assertEqual(model.questions[0].content, "<p>a &lt; b?</p>")

    def test_marker_with_formatted_option(self):
        item = ListItem(children=[Text(runs=[
            TextRun("<> "),
            TextRun("blue", TextStyle(bold=True)),
        ])], glyph_type=GlyphType.LATIN_UPPER)
        model = parse_document([para("[BEGIN#MCQ]"), para("[QUESTION] Sky?"), para("[OPTIONS]"), item])
        opt = model.questions[0].options[0]
        self.assertTrue(opt.is_correct)
        self.assertEqual(opt.text, "<b>blue</b>")
        self.assertEqual(opt.choice_text, "blue")

    def test_image_filenames_per_question(self):
        model = parse_document([
            para("[BEGIN#MCQ]"),
            para("[QUESTION]"),
            Image(data=b"one"),
            para("[OPTIONS]"),
            ListItem(children=[Text.plain("<> "), Image(data=b"two", mime_type="image/jpeg")]),
            option("none"),
            para("[QUESTION]"),
            Paragraph(children=[Image(data=b"three", width=50, height=20)]),
        ])
        self.assertEqual(
            sorted(model.images),
            ["q1_img_001.png", "q1_img_002.jpg", "q2_img_001.png"],
        )
        self.assertEqual(model.images["q2_img_001.png"], b"three")
        self.assertIn('width="50" height="20"', model.questions[1].content)

    def test_table_in_content(self):
        table = Table(rows=[[TableCell(blocks=[para("cell")])]])
        model = parse_document([para("[BEGIN#ESSAY]"), para("[QUESTION]"), table])
        self.assertEqual(model.questions[0].content, "<table><tr><td>cell<br/></td></tr></table>")


class TestParseErrors(unittest.TestCase):

    def assertParseError(self, blocks, fragment, line=None):
        with self.assertRaises(QuizParseError) as cm:
            parse_document(blocks)
        self.assertIn(fragment, str(cm.exception))
        if line is not None:
            self.assertEqual(cm.exception.line, line)

    def test_empty_document(self):
        self.assertParseError([], "Missing quiz type header")

    def test_first_line_not_header(self):
        self.assertParseError([para("hello"), para("[BEGIN#MCQ]")], 'Found: "hello"', 1)

    def test_table_before_header(self):
        self.assertParseError([Table(rows=[]), para("[BEGIN#MCQ]")], "Missing quiz type header", 1)

    def test_lowercase_header(self):
        self.assertParseError([para("[BEGIN#mcq]")], "Missing quiz type header")

    def test_second_header(self):
        self.assertParseError(
            [para("[BEGIN#MCQ]"), para("[QUESTION]"), para("[BEGIN#MCQ]")],
            "Invalid BEGIN header placement at line 3", 3,
        )

    def test_options_before_question(self):
        self.assertParseError([para("[BEGIN#MCQ]"), para("[OPTIONS]")], "Invalid [OPTIONS] placement", 2)

    def test_descriptions_before_question(self):
        self.assertParseError([para("[BEGIN#ESSAY]"), para("[DESCRIPTIONS]")], "Invalid [DESCRIPTIONS] placement", 2)

    def test_options_in_essay(self):
        self.assertParseError(
            [para("[BEGIN#ESSAY]"), para("[QUESTION]"), para("x"), para("[OPTIONS]")],
            "Invalid [OPTIONS] for ESSAY at line 4", 4,
        )

    def test_duplicate_options(self):
        self.assertParseError(
            [para("[BEGIN#MCQ]"), para("[QUESTION]"), para("[OPTIONS]"), option("a"), para("[OPTIONS]")],
            "Duplicate [OPTIONS] tag for Question 1", 5,
        )

    def test_duplicate_descriptions(self):
        self.assertParseError(
            [para("[BEGIN#ESSAY]"), para("[QUESTION]"), para("[DESCRIPTIONS]"), para("[DESCRIPTIONS]")],
            "Duplicate [DESCRIPTIONS] tag for Question 1", 4,
        )

    def test_second_descriptions_in_mcq_is_duplicate(self):
        self.assertParseError(
            [para("[BEGIN#MCQ]"), para("[QUESTION]"), para("[OPTIONS]"), option("<> a"),
             para("[DESCRIPTIONS]"), para("why"), para("[DESCRIPTIONS]")],
            "Duplicate [DESCRIPTIONS] tag for Question 1", 7,
        )

    def test_mcq_descriptions_before_options(self):
        self.assertParseError(
            [para("[BEGIN#MCQ]"), para("[QUESTION]"), para("x"), para("[DESCRIPTIONS]")],
            "For MCQ, [DESCRIPTIONS] must appear after [OPTIONS].",
        )

    def test_malformed_question_tags(self):
        for tag in ("[QUESTION#]", "[QUESTIONS]", "[QUESTION#abc]", "[QUESTION #1]", "[QUESTION#\u0663]"):
            with self.subTest(tag=tag):
                self.assertParseError([para("[BEGIN#ESSAY]"), para(tag)], "Invalid question tag", 2)


class TestQuestionTag(unittest.TestCase):

    def test_plain_and_numbered(self):
        tag = parse_question_tag("  [QUESTION] What?  ")
        self.assertEqual((tag.inline_text, tag.label), ("What?", None))

        tag = parse_question_tag("[QUESTION#12]Why?")
        self.assertEqual((tag.inline_text, tag.label, tag.tag_length), ("Why?", 12, 13))

    def test_not_a_tag(self):
        self.assertIsNone(parse_question_tag("Question 1"))
        self.assertIsNone(parse_question_tag(""))


if __name__ == "__main__":
    unittest.main()
