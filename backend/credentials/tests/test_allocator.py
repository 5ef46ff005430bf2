from unittest import mock

from django.test import TestCase, TransactionTestCase

from ..allocator import allocate_index_number, allocate_index_numbers
from ..approval import approve_student
from ..domain_student import Student, StudentStatus
from ..exceptions import CollisionExhausted, ValidationError
from ..invoicing import generate_invoice
from ..registry import Assigned, Collision, is_index_number_used, reserve_index_number
from .helpers import SequenceRng, make_cohort, make_exam_year, make_paid_invoice, make_school, make_student


class IndexAllocationTests(TestCase):
    def setUp(self):
        self.exam_year = make_exam_year()
        self.school = make_school()
        self.students = make_cohort(self.school, self.exam_year, 3)
        make_paid_invoice(self.school, self.exam_year)
        for s in self.students:
            approve_student(s.pk)
        self.ids = [s.pk for s in self.students]

    def _number(self, student_id):
        return Student.objects.get(pk=student_id).index_number

    def test_assigns_distinct_numbers(self):
        result = allocate_index_numbers(self.ids)
        self.assertEqual(result.counts, {"succeeded": 3, "skipped": 0, "failed": 0})
        numbers = [self._number(pk) for pk in self.ids]
        self.assertEqual(len(set(numbers)), 3)
        for n in numbers:
            self.assertRegex(n, r"^[1-9][0-9]{5}$")

    def test_redraws_on_collision(self):
        allocate_index_number(self.ids[0], rng=SequenceRng([111111]))
        outcome = allocate_index_number(self.ids[1], rng=SequenceRng([111111, 222222]))
        self.assertEqual(outcome.value, "222222")
        self.assertEqual(self._number(self.ids[0]), "111111")
        self.assertEqual(self._number(self.ids[1]), "222222")

    def test_exhaustion_fails_one_student_and_batch_continues(self):
        allocate_index_number(self.ids[0], rng=SequenceRng([111111]))
        rng = SequenceRng([111111, 111111, 111111, 333333])
        result = allocate_index_numbers(self.ids[1:], rng=rng, max_attempts=3)
        self.assertEqual(len(result.failed), 1)
        self.assertEqual(result.failed[0]["id"], self.ids[1])
        self.assertEqual(result.failed[0]["code"], "collision_exhausted")
        self.assertEqual(result.succeeded, [{"id": self.ids[2], "value": "333333"}])
        self.assertIsNone(self._number(self.ids[1]))

    def test_single_student_exhaustion_raises(self):
        allocate_index_number(self.ids[0], rng=SequenceRng([111111]))
        with self.assertRaises(CollisionExhausted):
            allocate_index_number(self.ids[1], rng=SequenceRng([111111]), max_attempts=5)

    def test_already_numbered_students_are_skipped(self):
        allocate_index_numbers(self.ids)
        before = {pk: self._number(pk) for pk in self.ids}
        result = allocate_index_numbers(self.ids)
        self.assertEqual(result.counts, {"succeeded": 0, "skipped": 3, "failed": 0})
        self.assertEqual({e["reason"] for e in result.skipped}, {"already_numbered"})
        self.assertEqual(before, {pk: self._number(pk) for pk in self.ids})

    def test_status_is_not_changed(self):
        allocate_index_numbers(self.ids)
        statuses = set(Student.objects.filter(pk__in=self.ids).values_list("status", flat=True))
        self.assertEqual(statuses, {StudentStatus.APPROVED})

    def test_pending_student_is_rejected_by_eligibility(self):
        pending = make_student(self.school, self.exam_year, first_name="Pending")
        result = allocate_index_numbers([pending.pk])
        self.assertEqual(result.failed[0]["code"], "validation_error")
        self.assertIsNone(self._number(pending.pk))

    def test_unpaid_cohort_gets_no_numbers(self):
        school = make_school()
        student = make_student(school, self.exam_year)
        generate_invoice(school.pk, self.exam_year.pk, "100")
        approve_student(student.pk)

        result = allocate_index_numbers([student.pk])
        self.assertEqual(result.failed[0]["code"], "validation_error")
        self.assertIsNone(self._number(student.pk))
        with self.assertRaises(ValidationError):
            allocate_index_number(student.pk)

    def test_unknown_student_is_reported(self):
        result = allocate_index_numbers([987654321])
        self.assertEqual(result.failed[0]["code"], "not_found")

    def test_late_registrant_of_paid_cohort_gets_no_number(self):
        late = make_student(self.school, self.exam_year, first_name="Late")
        approve_student(late.pk)

        result = allocate_index_numbers([late.pk])
        self.assertEqual(result.failed[0]["code"], "validation_error")
        self.assertIn("not paid for", result.failed[0]["reason"])
        self.assertIsNone(self._number(late.pk))


class _InterleavingRng(SequenceRng):
    """Runs ``interleave`` once, right after the first draw is handed out."""

    def __init__(self, values, interleave):
        super().__init__(values)
        self.interleave = interleave

    def randint(self, low, high):
        value = super().randint(low, high)
        if self.interleave is not None:
            interleave, self.interleave = self.interleave, None
            interleave()
        return value


class ConcurrentAllocationTests(TransactionTestCase):
    def setUp(self):
        self.exam_year = make_exam_year()
        self.school = make_school()
        self.first, self.second = make_cohort(self.school, self.exam_year, 2)
        make_paid_invoice(self.school, self.exam_year)
        approve_student(self.first.pk)
        approve_student(self.second.pk)

    def test_same_candidate_from_stale_state(self):
        # both batches saw the candidate as free
        self.assertFalse(is_index_number_used("222222"))

        outcomes = []

        def recording_reserve(candidate, student_id):
            outcome = reserve_index_number(candidate, student_id)
            outcomes.append((student_id, outcome))
            return outcome

        def other_batch_commits_first():
            allocate_index_numbers([self.first.pk], rng=SequenceRng([222222]))

        with mock.patch("credentials.allocator.reserve_index_number", side_effect=recording_reserve):
            result = allocate_index_numbers(
                [self.second.pk], rng=_InterleavingRng([222222, 333333], other_batch_commits_first),
            )

        self.assertEqual(result.succeeded, [{"id": self.second.pk, "value": "333333"}])
        collisions = [(sid, o) for sid, o in outcomes if isinstance(o, Collision)]
        self.assertEqual(collisions, [(self.second.pk, Collision("222222"))])
        numbers = dict(Student.objects.filter(school=self.school).values_list("id", "index_number"))
        self.assertEqual(numbers, {self.first.pk: "222222", self.second.pk: "333333"})

    def test_direct_reservations_race(self):
        self.assertFalse(is_index_number_used("444444"))
        self.assertEqual(reserve_index_number("444444", self.first.pk), Assigned("444444"))
        self.assertEqual(reserve_index_number("444444", self.second.pk), Collision("444444"))
        self.assertEqual(reserve_index_number("555555", self.second.pk), Assigned("555555"))
        self.assertEqual(
            Student.objects.filter(index_number__in=["444444", "555555"]).count(), 2,
        )
