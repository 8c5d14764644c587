import pytest
from sqlalchemy.exc import SQLAlchemyError

from core.records import StudentSubjectEnrollment
from core.repository import SchoolRepository
from screens.subject_enrollment.matrix import EnrollmentMatrix

MATHS, ENGLISH, FRENCH, MUSIC = 1, 2, 3, 4


class FailingRepository(SchoolRepository):
    def upsert_subject_enrollments(self, rows):
        raise SQLAlchemyError("database unavailable")


@pytest.fixture
def matrix(repo):
    return EnrollmentMatrix.load(repo, 101, 1)


def test_load_roster_and_class_subjects(matrix):
    assert [s.id for s in matrix.students] == [1, 2, 5, 6]
    assert [s.name for s in matrix.subjects] == ["English Language", "French", "Mathematics", "Music"]
    assert matrix.school_id == 1


def test_unset_cells_count_as_enrolled(matrix):
    assert matrix.is_enrolled(1, MATHS) is True
    assert matrix.has_record(1, MATHS) is False
    assert matrix.subject_has_records(MATHS) is False
    assert matrix.enrolled_count(MATHS) == 4


def test_toggle_negates_and_persists(repo, matrix):
    before = matrix.is_enrolled(2, FRENCH)

    after = matrix.toggle_enrollment(2, FRENCH)

    assert after is (not before)
    assert matrix.is_enrolled(2, FRENCH) is after
    assert EnrollmentMatrix.load(repo, 101, 1).is_enrolled(2, FRENCH) is after

    assert matrix.toggle_enrollment(2, FRENCH) is before
    rows = repo.fetch_subject_enrollments(101, 1)
    assert [(r.student_id, r.subject_id, r.is_enrolled) for r in rows] == [(2, FRENCH, before)]


def test_toggle_rejects_cells_outside_the_grid(matrix):
    with pytest.raises(ValueError):
        matrix.toggle_enrollment(7, MATHS)
    with pytest.raises(ValueError):
        matrix.toggle_enrollment(1, 999)


def test_failed_write_leaves_grid_unchanged(seeded_engine):
    matrix = EnrollmentMatrix.load(FailingRepository(seeded_engine, school_id=1), 101, 1)

    with pytest.raises(SQLAlchemyError):
        matrix.toggle_enrollment(1, MATHS)
    with pytest.raises(SQLAlchemyError):
        matrix.bulk_toggle_subject(MATHS, False)

    assert matrix.is_enrolled(1, MATHS) is True
    assert matrix.has_record(1, MATHS) is False


def test_bulk_toggle_sets_only_the_filtered_students(repo, matrix):
    filtered = matrix.filter_students("a00")
    assert len(filtered) == 4
    filtered = [s for s in filtered if s.campus_id == 1]

    written = matrix.bulk_toggle_subject(MATHS, False, [s.id for s in filtered])

    assert written == 2
    assert matrix.is_enrolled(1, MATHS) is False
    assert matrix.is_enrolled(2, MATHS) is False
    assert matrix.is_enrolled(5, MATHS) is True
    assert matrix.has_record(5, MATHS) is False
    for subject_id in (ENGLISH, FRENCH, MUSIC):
        assert not matrix.subject_has_records(subject_id)

    assert [s.id for s in matrix.visible_students_for_subject(MATHS)] == [5, 6]
    assert len(repo.fetch_subject_enrollments(101, 1)) == 2


def test_bulk_toggle_whole_roster_then_re_enroll(matrix):
    assert matrix.bulk_toggle_subject(MUSIC, False) == 4
    assert matrix.enrolled_count(MUSIC) == 0

    assert matrix.bulk_toggle_subject(MUSIC, True) == 4
    assert matrix.enrolled_count(MUSIC) == 4


def test_bulk_toggle_unknown_subject(matrix):
    with pytest.raises(ValueError):
        matrix.bulk_toggle_subject(999, True)


def test_bulk_enroll_selected(repo, matrix):
    written = matrix.bulk_enroll_selected([1, 5, 1], [FRENCH, MUSIC], enroll=False)

    assert written == 4
    assert not matrix.is_enrolled(1, FRENCH)
    assert not matrix.is_enrolled(5, MUSIC)
    assert matrix.is_enrolled(2, FRENCH)
    assert matrix.bulk_enroll_selected([], [FRENCH]) == 0

    reloaded = EnrollmentMatrix.load(repo, 101, 1)
    assert not reloaded.is_enrolled(5, FRENCH)


def test_reload_ignores_other_classes_and_terms(repo, matrix):
    repo.upsert_subject_enrollments([
        StudentSubjectEnrollment(student_id=1, subject_id=MATHS, academic_class_id=102, term_id=1, is_enrolled=False),
    ])

    matrix.reload()

    assert matrix.has_record(1, MATHS) is False


def test_filter_students(matrix):
    assert [s.id for s in matrix.filter_students("ADA")] == [1]
    assert [s.id for s in matrix.filter_students(" a005 ")] == [5]
    assert len(matrix.filter_students("")) == 4
    assert matrix.filter_students("nobody") == []


def test_to_dataframe(matrix):
    matrix.toggle_enrollment(1, MUSIC)

    df = matrix.to_dataframe()

    assert list(df.columns) == [
        "Student ID", "Student Name", "Admission Number",
        "English Language", "French", "Mathematics", "Music",
    ]
    assert not df.loc[df["Student ID"] == 1, "Music"].item()
    assert df.loc[df["Student ID"] == 2, "Music"].item()


def test_reload_reads_only_its_own_class_and_term(seeded_engine):
    class RecordingRepository(SchoolRepository):
        calls = []

        def fetch_subject_enrollments(self, academic_class_id=None, term_id=None):
            self.calls.append((academic_class_id, term_id))
            return super().fetch_subject_enrollments(academic_class_id, term_id)

    repo = RecordingRepository(seeded_engine, school_id=1)
    matrix = EnrollmentMatrix.load(repo, 101, 1)
    repo.calls.clear()

    matrix.reload()

    assert repo.calls == [(101, 1)]
