import unittest
from devops_query.utils.html_text import Document, Element, Text, html_to_plain_text, parse_html


class TestHtmlToPlainText(unittest.TestCase):

    def test_empty_input(self):
        self.assertEqual(html_to_plain_text(None), "")
        self.assertEqual(html_to_plain_text(""), "")

    def test_plain_text_passes_through(self):
        self.assertEqual(html_to_plain_text("Just text"), "Just text")

    def test_paragraphs_start_on_new_lines(self):
        result = html_to_plain_text("<p>First</p><p>Second</p><div>Third</div>")
        self.assertEqual(result, "First\nSecond\nThird")

    def test_first_paragraph_has_no_leading_blank_line(self):
        result = html_to_plain_text("<div><p>Only</p></div>")
        self.assertEqual(result, "Only")
        self.assertFalse(result.startswith("\n"))

    def test_line_breaks(self):
        self.assertEqual(html_to_plain_text("Line1<br>Line2<br/>Line3"), "Line1\nLine2\nLine3")

    def test_list_items_get_a_dash_line_each(self):
        result = html_to_plain_text("<p>Steps</p><ul><li>One</li><li>Two</li></ul><ol><li>Three</li></ol>")
        self.assertEqual(result, "Steps\n- One\n- Two\n- Three")
        lines = result.split("\n")
        self.assertEqual(len([line for line in lines if line.startswith("- ")]), 3)

    def test_list_without_closing_tags(self):
        self.assertEqual(html_to_plain_text("<ul><li>A<li>B</ul>"), "- A\n- B")

    def test_whitespace_only_text_is_skipped(self):
        markup = "<div>\n  <p>A</p>\n  <ul>\n    <li>B</li>\n  </ul>\n</div>"
        self.assertEqual(html_to_plain_text(markup), "A\n- B")

    def test_entities_are_decoded(self):
        self.assertEqual(html_to_plain_text("<p>Fish &amp; Chips &lt;3 &#169;</p>"), "Fish & Chips <3 ©")

    def test_unknown_tags_contribute_their_text(self):
        self.assertEqual(html_to_plain_text("<b>bold</b> and <span><i>italic</i></span>"), "bold and italic")

    def test_text_order_is_preserved(self):
        result = html_to_plain_text("<div>alpha<p>beta</p>gamma<ul><li>delta</li></ul></div>")
        positions = [result.index(word) for word in ("alpha", "beta", "gamma", "delta")]
        self.assertEqual(positions, sorted(positions))

    def test_comments_are_dropped(self):
        self.assertEqual(html_to_plain_text("<p>a<!-- hidden --></p>"), "a")

    def test_stray_end_tag_is_ignored(self):
        self.assertEqual(html_to_plain_text("</span><p>a</p></div><p>b</p>"), "a\nb")


class TestParseHtml(unittest.TestCase):

    def test_builds_tagged_tree(self):
        document = parse_html("<p>a<br>b</p>")
        self.assertEqual(
            document,
            Document([Element("p", [Text("a"), Element("br"), Text("b")])]),
        )

    def test_void_elements_take_no_children(self):
        document = parse_html("<img src='x.png'>after")
        self.assertEqual(document.children, [Element("img"), Text("after")])

    def test_text_keeps_raw_entities(self):
        document = parse_html("a &amp; b")
        self.assertEqual(document.children, [Text("a &amp; b")])


if __name__ == '__main__':
    unittest.main()
