from utils.titles import chinese_num_to_int, translate_title_algorithmic


def test_chinese_num_to_int():
    assert chinese_num_to_int("一") == 1
    assert chinese_num_to_int("十") == 10
    assert chinese_num_to_int("十一") == 11
    assert chinese_num_to_int("二十") == 20
    assert chinese_num_to_int("二十一") == 21
    assert chinese_num_to_int("三十四") == 34
    assert chinese_num_to_int("一百二十") == 120
    assert chinese_num_to_int("零") == 0
    assert chinese_num_to_int("") is None
    assert chinese_num_to_int("abc") is None


def test_translate_title_algorithmic():
    assert translate_title_algorithmic("Lecture", "第二十一讲") == "Lecture 21"
    assert translate_title_algorithmic("Discussion", "第三次") == "Discussion 3"
    assert translate_title_algorithmic("Homework", "作业二") == "Homework 2"
    assert translate_title_algorithmic("Quiz", "测验十") == "Quiz 10"
    assert translate_title_algorithmic("Midterm", "期中考试一") == "Midterm 1"
    assert translate_title_algorithmic("Midterm", "期中考试") == "Midterm"
    assert translate_title_algorithmic("Other", "期末考试") == "Final"
    assert translate_title_algorithmic("Homework", "作业三甲") == "Homework 3A"


def test_unknown_titles_fall_back_to_original():
    assert translate_title_algorithmic("Other", "Something else") == "Something else"
    assert translate_title_algorithmic("Lecture", "第几讲") == "第几讲"
