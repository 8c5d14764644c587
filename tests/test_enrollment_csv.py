import pytest
from sqlalchemy import text as sa_text

from screens.subject_enrollment.import_export import (
    csv_file_name,
    export_matrix_csv,
    import_matrix_csv,
    read_matrix_csv,
    validate_matrix_csv,
)
from screens.subject_enrollment.matrix import EnrollmentMatrix

MATHS, ENGLISH, FRENCH, MUSIC = 1, 2, 3, 4


@pytest.fixture
def matrix(repo):
    return EnrollmentMatrix.load(repo, 101, 1)


def _snapshot(matrix):
    return {
        (s.id, subj.id): matrix.is_enrolled(s.id, subj.id)
        for s in matrix.students
        for subj in matrix.subjects
    }


def test_export_layout(matrix):
    matrix.toggle_enrollment(5, FRENCH)

    lines = export_matrix_csv(matrix).splitlines()

    assert lines[0] == "Student ID,Student Name,Admission Number,English Language,French,Mathematics,Music"
    assert lines[1] == "1,Ada Obi,A001,1,1,1,1"
    assert lines[3] == "5,Chidi Eze,A005,1,0,1,1"
    assert len(lines) == 5


def test_export_then_import_keeps_state(repo, matrix):
    matrix.toggle_enrollment(1, MATHS)
    matrix.bulk_toggle_subject(MUSIC, False, [2, 6])
    before = _snapshot(matrix)

    applied, skipped, messages = import_matrix_csv(read_matrix_csv(export_matrix_csv(matrix)), matrix)

    assert (applied, skipped, messages) == (16, 0, [])
    assert _snapshot(matrix) == before
    assert _snapshot(EnrollmentMatrix.load(repo, 101, 1)) == before


def test_round_trip_with_padded_subject_name(repo):
    with repo.engine.begin() as conn:
        conn.execute(sa_text("UPDATE subjects SET name = 'French ' WHERE id = 3"))
    matrix = EnrollmentMatrix.load(repo, 101, 1)
    matrix.toggle_enrollment(1, FRENCH)
    before = _snapshot(matrix)

    frame = read_matrix_csv(export_matrix_csv(matrix))
    assert validate_matrix_csv(frame, matrix) == (True, [])
    applied, skipped, messages = import_matrix_csv(frame, matrix)

    assert messages == []
    assert applied == 16
    assert _snapshot(EnrollmentMatrix.load(repo, 101, 1)) == before
    assert before[(1, FRENCH)] is False


def test_import_truthy_values(repo, matrix):
    csv_text = (
        "Student ID,Student Name,Admission Number,Mathematics\n"
        "1,Ada Obi,A001,yes\n"
        "2,Bayo Ade,A002,TRUE\n"
        "5,Chidi Eze,A005,0\n"
        "6,Dayo Kalu,A006,no\n"
    )

    applied, skipped, _ = import_matrix_csv(read_matrix_csv(csv_text), matrix)

    assert (applied, skipped) == (4, 0)
    reloaded = EnrollmentMatrix.load(repo, 101, 1)
    assert [reloaded.is_enrolled(sid, MATHS) for sid in (1, 2, 5, 6)] == [True, True, False, False]
    assert not reloaded.subject_has_records(FRENCH)


def test_import_skips_students_not_in_class(matrix):
    csv_text = (
        "Student ID,Student Name,Admission Number,French,Basket Weaving\n"
        "1,Ada Obi,A001,0,1\n"
        "7,Efe Uche,A007,0,1\n"
        "abc,Nobody,X,0,1\n"
    )

    applied, skipped, messages = import_matrix_csv(read_matrix_csv(csv_text), matrix)

    assert (applied, skipped) == (1, 2)
    assert "Ignored unknown subject column(s): Basket Weaving" in messages
    assert "Skipped 2 row(s) for students not in this class" in messages
    assert not matrix.is_enrolled(1, FRENCH)
    assert not matrix.has_record(7, FRENCH)


def test_import_reads_bytes_with_bom(matrix):
    data = "Student ID,Student Name,Admission Number,Music\n2,Bayo Ade,A002,0\n".encode("utf-8-sig")

    df = read_matrix_csv(data)

    assert list(df.columns)[0] == "Student ID"
    import_matrix_csv(df, matrix)
    assert not matrix.is_enrolled(2, MUSIC)


def test_no_matching_subjects_is_rejected(matrix):
    df = read_matrix_csv("Student ID,Student Name,Admission Number,Basket Weaving\n1,Ada Obi,A001,1\n")

    is_valid, errors = validate_matrix_csv(df, matrix)
    assert not is_valid
    assert errors == ["No matching subjects found in CSV"]

    with pytest.raises(ValueError, match="No matching subjects"):
        import_matrix_csv(df, matrix)
    assert not matrix.has_record(1, MATHS)


def test_empty_and_malformed_files(matrix):
    empty = read_matrix_csv("Student ID,Student Name,Admission Number,Mathematics\n")
    assert validate_matrix_csv(empty, matrix) == (False, ["CSV file is empty or invalid"])

    wrong_first = read_matrix_csv("ID,Student Name,Admission Number,Mathematics\n1,Ada Obi,A001,1\n")
    is_valid, errors = validate_matrix_csv(wrong_first, matrix)
    assert not is_valid
    assert errors == ["First column must be 'Student ID'"]


def test_only_unknown_students_raises(matrix):
    df = read_matrix_csv("Student ID,Student Name,Admission Number,Mathematics\n99,Ghost,X,1\n")

    with pytest.raises(ValueError, match="No valid enrollment data found in CSV"):
        import_matrix_csv(df, matrix)


def test_csv_file_name():
    assert csv_file_name("JSS1 Gold", "First Term") == "subject_enrollment_JSS1_Gold_First_Term.csv"
    assert csv_file_name(None, "") == "subject_enrollment_unknown_unknown.csv"
