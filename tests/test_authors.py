# tests/test_authors.py
from lab_assistant.knowledge.authors import infer_author


class TestFilenameHeuristics:
    """Author names taken from the filename."""

    def test_parenthesized_name(self):
        assert infer_author("研究報告（佐藤花子）.pdf", "") == "佐藤花子"

    def test_ascii_parentheses(self):
        assert infer_author("final(伊藤健一).pdf", "") == "伊藤健一"

    def test_name_after_lenticular_brackets(self):
        assert infer_author("【最終版】鈴木一郎.pdf", "") == "鈴木一郎"

    def test_underscore_token(self):
        assert infer_author("修士論文_山田太郎.pdf", "") == "山田太郎"

    def test_stopwords_are_skipped(self):
        assert infer_author("修論_本文_小野健太.pdf", "") == "小野健太"

    def test_longest_token_wins(self):
        assert infer_author("山田_佐藤花子_最終.pdf", "") == "佐藤花子"

    def test_digits_are_stripped_from_tokens(self):
        assert infer_author("2023_中村拓也_v2.pdf", "") == "中村拓也"


class TestContentHeuristics:
    """Fallback to the leading content when the filename has no name."""

    def test_author_label(self):
        content = "タイトル: 作業姿勢の評価\n著者：中村拓也\n概要..."

        assert infer_author("draft_v2.pdf", content) == "中村拓也"

    def test_student_id_marker(self):
        content = "高橋美和 学籍番号 12345 人間工学研究室"

        assert infer_author("report.pdf", content) == "高橋美和"

    def test_advisor_marker_with_honorific(self):
        content = "渡辺健太君 指導教員 中西"

        assert infer_author("report.pdf", content) == "渡辺健太"

    def test_label_beyond_scan_window_is_ignored(self):
        content = "x" * 5000 + "著者：中村拓也"

        assert infer_author("report.pdf", content) is None


class TestNoMatch:

    def test_returns_none_without_clues(self):
        assert infer_author("notes.txt", "hello world") is None

    def test_never_raises_on_missing_input(self):
        assert infer_author(None, None) is None
