import pytest

from triage_intake.extraction import PatientInfo, extract_patient_info, normalize_field_value


def test_inline_label_commits_value():
    info = extract_patient_info("user: Name: James")

    assert info.name == "James"


def test_label_only_line_takes_next_line_as_value():
    info = extract_patient_info("assistant: Age,\nuser: 34 years old")

    assert info.age == "34"


def test_intake_call_only_captures_labelled_fields():
    text = (
        "assistant: Can I get your name?\n"
        "user: Name: Maria\n"
        "assistant: And your age?\n"
        "user: 29\n"
        "Summary: Patient reports mild fever.\n"
        "\n"
    )

    info = extract_patient_info(text)

    assert info.to_dict() == {"name": "Maria", "age": "", "gender": "", "symptoms": ""}


def test_gender_on_next_line_drops_trailing_period():
    info = extract_patient_info("assistant: Gender,\nuser: Female.")

    assert info.gender == "Female"


@pytest.mark.parametrize(
    ("line", "field"),
    [
        ("Name: not shared", "name"),
        ("Gender: Unknown.", "gender"),
        ("Symptoms: N/A", "symptoms"),
        ("Age: Not   Shared", "age"),
    ],
)
def test_filler_phrases_become_empty(line: str, field: str):
    info = extract_patient_info(f"user: {line}")

    assert getattr(info, field) == ""


def test_filler_phrase_anywhere_in_value_clears_it():
    info = extract_patient_info("Symptoms: unknown rash on arm")

    assert info.symptoms == ""


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("name - Ana", "Ana"),
        ("NAME:Bob", "Bob"),
        ("Symptoms, cough and fever.", "cough and fever"),
        ("symptoms: headache, nausea;.,", "headache, nausea"),
    ],
)
def test_label_separators_and_trailing_punctuation(line: str, expected: str):
    info = extract_patient_info(line)

    assert expected in info.to_dict().values()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("29 or 30", "29"),
        ("I'm 1234", "123"),
        ("thirty-four", "thirty-four"),
        ("  57.  ", "57"),
    ],
)
def test_age_keeps_first_digit_run(value: str, expected: str):
    assert extract_patient_info(f"Age: {value}").age == expected


def test_blank_lines_do_not_consume_pending_field():
    info = extract_patient_info("assistant: Age:\n\n\nuser: 42")

    assert info.age == "42"


def test_new_label_replaces_pending_field():
    info = extract_patient_info("Name:\nAge: 30\nMaria")

    assert info.name == ""
    assert info.age == "30"


def test_later_value_overrides_earlier_one():
    info = extract_patient_info("Name: Alex\nassistant: Sorry, again?\nName: Alexander")

    assert info.name == "Alexander"


def test_patient_role_prefix_is_stripped():
    info = extract_patient_info("patient: Symptoms: sore throat\r\nPATIENT: Gender: male")

    assert info.symptoms == "sore throat"
    assert info.gender == "male"


def test_pending_label_at_end_leaves_field_empty():
    assert extract_patient_info("user: Name: Lee\nassistant: Gender:").gender == ""


@pytest.mark.parametrize("text", ["", "\n\n", "hello there\nhow are you?", ":::\n-,-"])
def test_unstructured_input_yields_empty_record(text: str):
    assert extract_patient_info(text) == PatientInfo()


def test_patient_info_is_idempotent():
    text = "Name: Sam\nAge,\n61\nGender: n/a\nSymptoms -\nchest tightness."

    first = extract_patient_info(text)
    second = extract_patient_info(text)

    assert first == second
    assert first.to_dict() == {
        "name": "Sam",
        "age": "61",
        "gender": "",
        "symptoms": "chest tightness",
    }


def test_normalize_field_value_only_extracts_digits_for_age():
    assert normalize_field_value("name", "Agent 47.") == "Agent 47"
    assert normalize_field_value("age", "Agent 47.") == "47"
