import unittest

from models.document_tree import Paragraph, Table
from models.quiz_model import QuizType
from core.markup_tools import (
    get_quiz_type_header,
    has_correct_marker,
    new_quiz_blocks,
    next_question_label,
    question_template,
    renumber_question_labels,
    toggle_correct_marker,
    toggle_correct_option,
)
from core.quiz_parser import QuizParseError, parse_document
from core.quiz_validator import validate_model


class TestCorrectMarker(unittest.TestCase):

    def test_toggle_twice_restores_text(self):
        for text in ("Jakarta", "  spaced", "", "<b>&"):
            with self.subTest(text=text):
                toggled = toggle_correct_marker(text)
                self.assertTrue(has_correct_marker(toggled))
                self.assertEqual(toggle_correct_marker(toggled), text)

    def test_remove_keeps_extra_space(self):
        self.assertEqual(toggle_correct_marker("<>  two"), " two")

    def test_toggle_option_moves_marker(self):
        texts = toggle_correct_option(["<> a", "b", "c"], 2)
        self.assertEqual(texts, ["a", "b", "<> c"])

    def test_toggle_option_off(self):
        self.assertEqual(toggle_correct_option(["<> a", "b"], 0), ["a", "b"])

    def test_toggle_option_out_of_range(self):
        with self.assertRaises(IndexError):
            toggle_correct_option(["a"], 3)


class TestQuestionLabels(unittest.TestCase):

    def test_renumber(self):
        lines = ["[BEGIN#MCQ]", "[QUESTION#5] a", "text", "  [QUESTION]", "[OPTIONS]"]
        renumbered, count = renumber_question_labels(lines)
        self.assertEqual(count, 2)
        self.assertEqual(renumbered, ["[BEGIN#MCQ]", "[QUESTION#1] a", "text", "  [QUESTION#2]", "[OPTIONS]"])

    def test_renumber_rejects_malformed_tag(self):
        with self.assertRaises(QuizParseError):
            renumber_question_labels(["[QUESTION#x]"])

    def test_next_label_counts_tags(self):
        self.assertEqual(next_question_label(["[QUESTION#7]", "body", "[QUESTION]"]), 3)
        self.assertEqual(next_question_label([]), 1)


class TestTemplates(unittest.TestCase):

    def test_header_lookup(self):
        header = get_quiz_type_header([Paragraph.of_text(""), Paragraph.of_text("[BEGIN#ESSAY]")])
        self.assertEqual((header.quiz_type, header.line), (QuizType.ESSAY, 2))
        self.assertIsNone(get_quiz_type_header([Paragraph.of_text("Title")]))
        self.assertIsNone(get_quiz_type_header([Table(rows=[])]))
        self.assertIsNone(get_quiz_type_header([]))

    def test_mcq_template_is_valid(self):
        blocks = new_quiz_blocks("mcq") + question_template(QuizType.MCQ, 1)
        model = parse_document(blocks)
        self.assertTrue(validate_model(model).is_valid)
        self.assertEqual(model.questions[0].label, 1)
        self.assertEqual([o.text for o in model.questions[0].options], ["Option A (Correct)", "Option B"])

    def test_essay_template_is_valid(self):
        blocks = new_quiz_blocks(QuizType.ESSAY) + question_template(QuizType.ESSAY, 4)
        model = parse_document(blocks)
        self.assertTrue(validate_model(model).is_valid)
        self.assertEqual(model.questions[0].descriptions, "<p>Optional explanation...</p>")


if __name__ == "__main__":
    unittest.main()
