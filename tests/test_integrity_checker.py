from core.records import AcademicClass, AcademicClassStudent, ScoreEntry, Student, StudentTermReport
from screens.result_integrity.analytics import build_scope_for_class, find_integrity_issues, summarize_issues
from screens.result_integrity.models import IssueType, ResultScope

CLASSES = [
    AcademicClass(id=101, name="JSS1 Gold", level="JSS1", arm="Gold", session_label="2024/2025"),
    AcademicClass(id=102, name="JSS2 Gold", level="JSS2", arm="Gold", session_label="2024/2025"),
]


def _students():
    return [
        Student(id=1, name="Ada Obi", campus_id=1),
        Student(id=2, name="Bayo Ade", campus_id=1),
        Student(id=5, name="Chidi Eze", campus_id=2),
        Student(id=6, name="Dayo Kalu", campus_id=2, status="Withdrawn"),
        Student(id=7, name="Efe Uche", campus_id=3),
    ]


def _of_type(issues, issue_type):
    return [i for i in issues if i.type == issue_type]


def test_enrolled_students_from_two_campuses_have_no_orphans():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 1), AcademicClassStudent(101, 5, 1)]
    reports = [
        StudentTermReport(student_id=1, term_id=1, academic_class_id=101, average_score=70),
        StudentTermReport(student_id=5, term_id=1, academic_class_id=101, average_score=65),
    ]

    scope = build_scope_for_class(101, 1, CLASSES, enrollments, reports, [], students)
    # the scope carries campus 1 from the first candidate student
    assert scope.campus_id == 1

    issues = find_integrity_issues(reports, enrollments, students, [], scope, CLASSES)
    assert _of_type(issues, IssueType.ORPHAN_RESULT) == []
    assert issues == []


def test_campus_on_scope_never_filters_enrollments():
    students = _students()
    enrollments = [AcademicClassStudent(101, 5, 1), AcademicClassStudent(101, 7, 1)]
    reports = [
        StudentTermReport(student_id=5, term_id=1, academic_class_id=101),
        StudentTermReport(student_id=7, term_id=1, academic_class_id=101),
    ]
    scope = ResultScope(term_id=1, campus_id=1, academic_class_id=101)

    assert find_integrity_issues(reports, enrollments, students, [], scope, CLASSES) == []


def test_report_without_enrollment_is_orphan():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 1)]
    reports = [
        StudentTermReport(student_id=1, term_id=1, academic_class_id=101),
        StudentTermReport(student_id=2, term_id=1, academic_class_id=101),
    ]
    scope = ResultScope(term_id=1, academic_class_id=101)

    issues = find_integrity_issues(reports, enrollments, students, [], scope, CLASSES)
    orphans = _of_type(issues, IssueType.ORPHAN_RESULT)

    assert [o.student_id for o in orphans] == [2]
    assert "Bayo Ade" in orphans[0].message
    assert "JSS1 Gold" in orphans[0].message
    # the same student also has no class assignment at all
    assert [m.student_id for m in _of_type(issues, IssueType.MISSING_ASSIGNMENT)] == [2]


def test_report_for_a_different_class_is_orphan_but_not_missing_assignment():
    students = _students()
    enrollments = [AcademicClassStudent(102, 1, 1)]
    reports = [StudentTermReport(student_id=1, term_id=1, academic_class_id=101)]
    scope = ResultScope(term_id=1)

    issues = find_integrity_issues(reports, enrollments, students, [], scope, CLASSES)

    assert [(i.type, i.student_id, i.academic_class_id) for i in issues] == [
        (IssueType.ORPHAN_RESULT, 1, 101),
    ]


def test_enrollment_in_another_term_does_not_count():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 2)]
    reports = [StudentTermReport(student_id=1, term_id=1, academic_class_id=101)]

    issues = find_integrity_issues(reports, enrollments, students, [], ResultScope(term_id=1), CLASSES)

    assert len(_of_type(issues, IssueType.ORPHAN_RESULT)) == 1


def test_inactive_students_are_not_checked():
    students = _students()
    reports = [StudentTermReport(student_id=6, term_id=1, academic_class_id=101)]

    assert find_integrity_issues(reports, [], students, [], ResultScope(term_id=1), CLASSES) == []


def test_unknown_student_is_checked_on_identity():
    reports = [StudentTermReport(student_id=99, term_id=1, academic_class_id=101)]

    issues = find_integrity_issues(reports, [], _students(), [], ResultScope(term_id=1), CLASSES)

    assert [(i.type, i.student_id) for i in issues] == [(IssueType.ORPHAN_RESULT, 99)]
    assert "student 99" in issues[0].message


def test_report_without_class_matches_any_scoped_enrollment():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 1)]
    reports = [StudentTermReport(student_id=1, term_id=1, academic_class_id=None)]
    scope = ResultScope(term_id=1, academic_class_id=101)

    assert find_integrity_issues(reports, enrollments, students, [], scope, CLASSES) == []


def test_missing_assignment_from_score_entries():
    students = _students()
    scores = [ScoreEntry(student_id=7, term_id=1, academic_class_id=101, subject_name="Mathematics")]

    issues = find_integrity_issues([], [], students, scores, ResultScope(term_id=1), CLASSES)

    assert [(i.type, i.student_id, i.academic_class_id) for i in issues] == [
        (IssueType.MISSING_ASSIGNMENT, 7, 101),
    ]
    assert issues[0].message.startswith("Efe Uche is active")


def test_session_and_arm_narrow_the_scope():
    students = _students()
    reports = [StudentTermReport(student_id=2, term_id=1, academic_class_id=101)]

    other_session = ResultScope(term_id=1, session_label="2023/2024")
    other_arm = ResultScope(term_id=1, arm_name="Blue")

    assert find_integrity_issues(reports, [], students, [], other_session, CLASSES) == []
    assert find_integrity_issues(reports, [], students, [], other_arm, CLASSES) == []


def test_duplicates_and_ordering():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 1)]
    reports = [
        StudentTermReport(student_id=1, term_id=1, academic_class_id=101, average_score=70),
        StudentTermReport(student_id=1, term_id=1, academic_class_id=101, average_score=71),
        StudentTermReport(student_id=2, term_id=1, academic_class_id=101),
    ]
    scores = [
        ScoreEntry(student_id=1, term_id=1, academic_class_id=101, subject_name="Mathematics"),
        ScoreEntry(student_id=1, term_id=1, academic_class_id=101, subject_name="Mathematics"),
        ScoreEntry(student_id=1, term_id=1, academic_class_id=101, subject_name="English Language"),
    ]

    issues = find_integrity_issues(reports, enrollments, students, scores, ResultScope(term_id=1), CLASSES)

    assert [i.type for i in issues] == [
        IssueType.ORPHAN_RESULT,
        IssueType.MISSING_ASSIGNMENT,
        IssueType.DUPLICATE_RESULT,
        IssueType.DUPLICATE_RESULT,
    ]
    assert "(2 reports)" in issues[2].message
    assert "Mathematics (2 rows)" in issues[3].message

    counts = summarize_issues(issues)
    assert counts == {
        IssueType.MISSING_ASSIGNMENT: 1,
        IssueType.ORPHAN_RESULT: 1,
        IssueType.DUPLICATE_RESULT: 2,
    }


def test_checker_does_not_mutate_inputs():
    students = _students()
    enrollments = [AcademicClassStudent(101, 1, 1)]
    reports = [StudentTermReport(student_id=2, term_id=1, academic_class_id=101)]
    before = (list(students), list(enrollments), list(reports))

    find_integrity_issues(reports, enrollments, students, [], ResultScope(term_id=1), CLASSES)

    assert (students, enrollments, reports) == before
