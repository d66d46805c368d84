from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from circulation import borrowing, request_workflow
from circulation.models import BorrowRecord, Request, UserConfig

from .base import LibraryFixturesMixin

Type = Request.Type


class RequestWorkflowTests(TestCase, LibraryFixturesMixin):
    def setUp(self):
        self.member = self.make_user('member')
        self.admin = self.make_user('librarian', role=UserConfig.Role.ADMIN)
        self.book = self.make_book(total=2)
        self.record = self.make_borrowed(self.member, self.book)

    def open_request(self, request_type, reason='Please help'):
        result = request_workflow.create_request(self.member, self.record.pk, request_type, reason)
        self.assertTrue(result.success, result.message)
        return result.data['request']

    def approve(self, request_obj, action_data=None):
        return request_workflow.respond_to_request(
            request_obj.pk, Request.Status.APPROVED, 'Done', self.admin, action_data=action_data
        )

    # Creating and rescinding
    def test_create_request(self):
        """A borrower can open a request against their borrowed book"""
        result = request_workflow.create_request(
            self.member, self.record.pk, Type.OTHER, 'Question about the book', description='Details'
        )
        self.assertTrue(result.success)
        self.assertEqual(result.status_code, 201)
        request_obj = result.data['request']
        self.assertEqual(request_obj.status, Request.Status.PENDING)
        self.assertEqual(request_obj.user, self.member)

    def test_create_request_for_someone_elses_record(self):
        """Requests are only allowed on the caller's own records"""
        stranger = self.make_user('stranger')
        result = request_workflow.create_request(stranger, self.record.pk, Type.OTHER, 'Mine now')
        self.assertEqual(result.error, 'not_owner')
        self.assertEqual(result.status_code, 403)

    def test_create_request_for_pending_record(self):
        """Records still awaiting approval cannot carry requests"""
        other_book = self.make_book(title='Other Book')
        pending = borrowing.request_borrow(self.member, other_book.pk).data['borrow_record']
        result = request_workflow.create_request(self.member, pending.pk, Type.EXTEND_BORROW, 'Longer')
        self.assertEqual(result.error, 'invalid_transition')

    def test_create_request_with_unknown_type(self):
        result = request_workflow.create_request(self.member, self.record.pk, 'RENEW_FOREVER', 'Please')
        self.assertEqual(result.error, 'invalid_parameter')

    def test_only_one_pending_request_per_record(self):
        """A second pending request on the same record is refused"""
        self.open_request(Type.EXTEND_BORROW)
        result = request_workflow.create_request(self.member, self.record.pk, Type.OTHER, 'Again')
        self.assertEqual(result.error, 'already_active')
        self.assertEqual(Request.objects.count(), 1)

    def test_concurrent_request_hits_unique_constraint(self):
        """A request racing past the pending check is stopped by the database"""
        self.open_request(Type.EXTEND_BORROW)
        with mock.patch('circulation.request_workflow._has_pending_request', return_value=False):
            result = request_workflow.create_request(self.member, self.record.pk, Type.OTHER, 'Again')
        self.assertEqual(result.error, 'already_active')
        self.assertEqual(result.status_code, 409)
        self.assertEqual(Request.objects.filter(borrow_record=self.record).count(), 1)

    def test_rescind_own_request(self):
        request_obj = self.open_request(Type.OTHER)
        result = request_workflow.rescind_request(request_obj.pk, self.member)
        self.assertTrue(result.success)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.RESCINDED)
        self.assertIsNotNone(request_obj.rescinded_at)

    def test_rescind_someone_elses_request(self):
        request_obj = self.open_request(Type.OTHER)
        result = request_workflow.rescind_request(request_obj.pk, self.admin)
        self.assertEqual(result.error, 'not_owner')

    def test_rescinded_request_cannot_be_answered(self):
        """Once rescinded, neither rescinding nor responding is possible"""
        request_obj = self.open_request(Type.EXTEND_BORROW)
        request_workflow.rescind_request(request_obj.pk, self.member)

        result = request_workflow.rescind_request(request_obj.pk, self.member)
        self.assertEqual(result.error, 'invalid_transition')
        self.assertEqual(result.message, 'Only pending requests can be rescinded')

        result = self.approve(request_obj)
        self.assertEqual(result.error, 'invalid_transition')
        self.record.refresh_from_db()
        self.assertEqual(self.record.due_date, timezone.localdate() + timedelta(days=14))

    def test_rescind_approved_request(self):
        """Approved requests can no longer be rescinded"""
        request_obj = self.open_request(Type.OTHER)
        self.approve(request_obj)
        result = request_workflow.rescind_request(request_obj.pk, self.member)
        self.assertEqual(result.error, 'invalid_transition')
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.APPROVED)

    # Responding
    def test_reject_has_no_side_effects(self):
        request_obj = self.open_request(Type.EXTEND_BORROW)
        result = request_workflow.respond_to_request(
            request_obj.pk, Request.Status.REJECTED, 'Not this time', self.admin
        )
        self.assertTrue(result.success)
        self.assertEqual(result.message, 'Request rejected successfully')
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.REJECTED)
        self.assertEqual(request_obj.admin, self.admin)
        self.assertIsNotNone(request_obj.resolved_at)
        self.record.refresh_from_db()
        self.assertEqual(self.record.due_date, timezone.localdate() + timedelta(days=14))

    def test_extend_borrow(self):
        """Approving an extension adds seven days to the due date"""
        old_due = self.record.due_date
        result = self.approve(self.open_request(Type.EXTEND_BORROW))
        self.assertTrue(result.success)
        self.assertIn('extended by 7 days', result.message)
        self.record.refresh_from_db()
        self.assertEqual(self.record.due_date, old_due + timedelta(days=7))
        self.assertEqual(result.data['action']['new_due_date'], self.record.due_date.isoformat())

    def test_report_lost(self):
        """A lost copy is written off and the borrower suspended"""
        result = self.approve(self.open_request(Type.REPORT_LOST))
        self.assertTrue(result.success)
        self.assertTrue(result.data['action']['book_removed'])

        self.record.refresh_from_db()
        self.assertEqual(self.record.status, BorrowRecord.Status.RETURNED)
        self.book.refresh_from_db()
        self.assertEqual(self.book.total_copies, 1)
        self.assertEqual(self.book.available_copies, 1)
        config = UserConfig.objects.get(user=self.member)
        self.assertEqual(config.status, UserConfig.Status.SUSPENDED)
        self.assertGreater(config.suspended_until, timezone.now() + timedelta(days=6))

    def test_report_damage(self):
        result = self.approve(self.open_request(Type.REPORT_DAMAGE))
        self.assertTrue(result.success)
        self.assertIn('Damaged book reported', result.message)
        self.book.refresh_from_db()
        self.assertEqual(self.book.total_copies, 1)
        self.assertEqual(UserConfig.objects.get(user=self.member).status, UserConfig.Status.SUSPENDED)

    def test_early_return(self):
        """An early return puts the copy back on the shelf"""
        result = self.approve(self.open_request(Type.EARLY_RETURN))
        self.assertTrue(result.success)
        self.record.refresh_from_db()
        self.assertEqual(self.record.status, BorrowRecord.Status.RETURNED)
        self.assertEqual(self.record.return_date, timezone.localdate())
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_change_due_date(self):
        new_due = timezone.localdate() + timedelta(days=30)
        result = self.approve(self.open_request(Type.CHANGE_DUE_DATE), {'new_due_date': new_due})
        self.assertTrue(result.success)
        self.record.refresh_from_db()
        self.assertEqual(self.record.due_date, new_due)

    def test_change_due_date_accepts_iso_string(self):
        new_due = timezone.localdate() + timedelta(days=10)
        result = self.approve(self.open_request(Type.CHANGE_DUE_DATE), {'new_due_date': new_due.isoformat()})
        self.assertTrue(result.success)
        self.record.refresh_from_db()
        self.assertEqual(self.record.due_date, new_due)

    def test_change_due_date_without_date(self):
        """A missing date fails the approval and keeps the request pending"""
        request_obj = self.open_request(Type.CHANGE_DUE_DATE)
        result = self.approve(request_obj)
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'missing_parameter')
        self.assertEqual(result.message, 'New due date is required')
        self.assertEqual(result.status_code, 400)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.PENDING)
        self.assertIsNone(request_obj.admin)

    def test_change_due_date_in_the_past(self):
        request_obj = self.open_request(Type.CHANGE_DUE_DATE)
        result = self.approve(request_obj, {'new_due_date': timezone.localdate() - timedelta(days=1)})
        self.assertEqual(result.error, 'invalid_parameter')
        self.assertIn('in the past', result.message)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.PENDING)

    def test_change_due_date_before_borrow_date(self):
        result = self.approve(
            self.open_request(Type.CHANGE_DUE_DATE), {'new_due_date': timezone.localdate() - timedelta(days=10)}
        )
        self.assertEqual(result.error, 'invalid_parameter')
        self.assertIn('before the borrow date', result.message)

    def test_change_due_date_garbage(self):
        result = self.approve(self.open_request(Type.CHANGE_DUE_DATE), {'new_due_date': 'next tuesday'})
        self.assertEqual(result.error, 'invalid_parameter')

    def test_other_is_acknowledged(self):
        result = self.approve(self.open_request(Type.OTHER))
        self.assertTrue(result.success)
        self.assertEqual(result.data['action']['action_type'], 'message_only')
        self.record.refresh_from_db()
        self.assertEqual(self.record.status, BorrowRecord.Status.BORROWED)

    def test_action_on_returned_record_keeps_request_pending(self):
        """If the record was returned meanwhile, the action fails and nothing changes"""
        request_obj = self.open_request(Type.EXTEND_BORROW)
        borrowing.return_borrow(self.record.pk, self.admin)
        result = self.approve(request_obj)
        self.assertEqual(result.error, 'invalid_transition')
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.PENDING)

    def test_member_cannot_respond(self):
        request_obj = self.open_request(Type.OTHER)
        result = request_workflow.respond_to_request(
            request_obj.pk, Request.Status.APPROVED, 'Self service', self.member
        )
        self.assertEqual(result.error, 'insufficient_permission')

    def test_unknown_decision(self):
        request_obj = self.open_request(Type.OTHER)
        result = request_workflow.respond_to_request(request_obj.pk, 'MAYBE', 'Hmm', self.admin)
        self.assertEqual(result.error, 'invalid_parameter')

    def test_storage_failure_during_action(self):
        """A storage error while applying the action rolls the decision back"""
        request_obj = self.open_request(Type.EXTEND_BORROW)
        with mock.patch(
            'circulation.request_workflow.execute_request_action', side_effect=DatabaseError('locked')
        ):
            with self.assertLogs('circulation.request_workflow', level='ERROR'):
                result = self.approve(request_obj)
        self.assertEqual(result.error, 'request_action_failed')
        self.assertEqual(result.status_code, 500)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, Request.Status.PENDING)


class CirculationInvariantTests(TestCase, LibraryFixturesMixin):
    """Mixed sequences of operations keep the counters and records consistent."""

    def assertConsistent(self, book):
        book.refresh_from_db()
        self.assertGreaterEqual(book.available_copies, 0)
        self.assertLessEqual(book.available_copies, book.total_copies)
        borrowed = BorrowRecord.objects.filter(book=book, status=BorrowRecord.Status.BORROWED).count()
        self.assertLessEqual(borrowed, book.total_copies)
        for user_id in BorrowRecord.objects.values_list('user_id', flat=True).distinct():
            active = BorrowRecord.objects.filter(
                user_id=user_id, book=book, status__in=BorrowRecord.ACTIVE_STATUSES
            ).count()
            self.assertLessEqual(active, 1)

    def test_mixed_sequence(self):
        admin = self.make_user('librarian', role=UserConfig.Role.ADMIN)
        readers = [self.make_user(f'reader{i}') for i in range(3)]
        book = self.make_book(total=2)

        records = [borrowing.request_borrow(r, book.pk).data['borrow_record'] for r in readers]
        self.assertConsistent(book)

        approvals = [borrowing.approve_borrow(rec.pk, admin) for rec in records]
        self.assertEqual([a.success for a in approvals], [True, True, False])
        self.assertConsistent(book)

        request_obj = request_workflow.create_request(
            readers[0], records[0].pk, Type.REPORT_LOST, 'Left it on the bus'
        ).data['request']
        request_workflow.respond_to_request(request_obj.pk, Request.Status.APPROVED, 'Noted', admin)
        self.assertConsistent(book)
        self.assertEqual(book.total_copies, 1)
        self.assertEqual(book.available_copies, 0)

        borrowing.return_borrow(records[1].pk, admin)
        self.assertConsistent(book)
        self.assertTrue(borrowing.approve_borrow(records[2].pk, admin).success)
        self.assertConsistent(book)
        self.assertEqual(book.available_copies, 0)

