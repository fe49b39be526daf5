from unittest import mock

from django.core import mail
from django.test import TestCase

from ordering.choices import NotificationStatus, OrderStatus
from ordering.exceptions import InvalidStatusError, NotificationError
from ordering.models import Notification, OrderTracking
from ordering.order_lifecycle import OrderStatusService, build_timeline, can_transition
from ordering.services.notification_service import NotificationService

from .helpers import create_admin, create_customer, create_menu_item, create_order

NOTIFY = 'ordering.order_lifecycle.NotificationService.notify_order_status_update'


class TransitionTableTests(TestCase):

    def test_forward_moves_follow_lifecycle(self):
        self.assertTrue(can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED))
        self.assertTrue(can_transition(OrderStatus.PENDING, OrderStatus.READY))
        self.assertTrue(can_transition(OrderStatus.PREPARING, OrderStatus.CANCELLED))

    def test_backward_and_terminal_moves_do_not(self):
        self.assertFalse(can_transition(OrderStatus.READY, OrderStatus.PREPARING))
        self.assertFalse(can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED))
        self.assertFalse(can_transition(OrderStatus.CANCELLED, OrderStatus.PENDING))
        self.assertFalse(can_transition(OrderStatus.CONFIRMED, OrderStatus.CONFIRMED))


class OrderStatusUpdateTests(TestCase):

    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer()
        self.menu_item = create_menu_item()
        self.order = create_order(self.customer, self.menu_item, quantity=2)

    @mock.patch(NOTIFY)
    def test_status_change_notifies_once(self, notify):
        changed = OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED, updated_by=self.admin)

        self.assertTrue(changed)
        notify.assert_called_once_with(self.order, OrderStatus.PENDING, OrderStatus.CONFIRMED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CONFIRMED)
        self.assertIsNotNone(self.order.confirmed_at)

        tracking = OrderTracking.objects.get(order=self.order)
        self.assertEqual(tracking.previous_status, OrderStatus.PENDING)
        self.assertEqual(tracking.updated_by, self.admin)

    @mock.patch(NOTIFY)
    def test_same_status_does_not_notify(self, notify):
        OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED)
        changed = OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED)

        self.assertFalse(changed)
        self.assertEqual(notify.call_count, 1)
        self.assertEqual(OrderTracking.objects.filter(order=self.order).count(), 1)

    @mock.patch(NOTIFY, side_effect=NotificationError('SMTP down'))
    def test_notification_failure_keeps_status(self, notify):
        changed = OrderStatusService.update_status(self.order, OrderStatus.PREPARING)

        self.assertTrue(changed)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PREPARING)

    @mock.patch(NOTIFY)
    def test_non_forward_move_is_allowed_with_warning(self, notify):
        OrderStatusService.update_status(self.order, OrderStatus.DELIVERED)

        with self.assertLogs('ordering.order_lifecycle', level='WARNING') as logs:
            OrderStatusService.update_status(self.order, OrderStatus.PREPARING)

        self.assertIn('does not follow the order lifecycle', logs.output[0])
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PREPARING)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(InvalidStatusError):
            OrderStatusService.update_status(self.order, 'LOST')

    def test_real_notification_is_recorded_and_emailed(self):
        OrderStatusService.update_status(self.order, OrderStatus.OUT_FOR_DELIVERY)

        notification = Notification.objects.get(order=self.order)
        self.assertEqual(notification.status, NotificationStatus.SENT)
        self.assertEqual(notification.data['new_status'], OrderStatus.OUT_FOR_DELIVERY)
        self.assertTrue(notification.sent_via_email)
        self.assertTrue(notification.sent_via_websocket)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.customer.email])


class BulkStatusUpdateTests(TestCase):

    def setUp(self):
        self.admin = create_admin()
        menu_item = create_menu_item()
        self.customers = [create_customer(f'customer{i}') for i in range(3)]
        self.orders = [create_order(customer, menu_item) for customer in self.customers]

    def test_one_failing_notification_does_not_block_others(self):
        failing = self.orders[1]

        def notify(order, old_status, new_status):
            if order.order_id == failing.order_id:
                raise NotificationError('mailbox full')

        with mock.patch(NOTIFY, side_effect=notify) as notify_mock:
            result = OrderStatusService.bulk_update_status(
                [order.order_id for order in self.orders], OrderStatus.DELIVERED, updated_by=self.admin
            )

        self.assertEqual(notify_mock.call_count, 3)
        self.assertEqual(result.updated_count, 3)
        self.assertEqual(result.failed_notification_ids, [failing.order_id])
        self.assertCountEqual(result.notified_ids, [self.orders[0].order_id, self.orders[2].order_id])

        for order in self.orders:
            order.refresh_from_db()
            self.assertEqual(order.status, OrderStatus.DELIVERED)
            self.assertIsNotNone(order.delivered_at)

    @mock.patch(NOTIFY)
    def test_missing_and_unchanged_orders(self, notify):
        OrderStatusService.update_status(self.orders[0], OrderStatus.CONFIRMED)
        notify.reset_mock()

        result = OrderStatusService.bulk_update_status(
            [self.orders[0].order_id, self.orders[1].order_id, 99999], OrderStatus.CONFIRMED
        )

        self.assertEqual(result.missing_ids, [99999])
        self.assertEqual(result.changed_ids, [self.orders[1].order_id])
        notify.assert_called_once()


class NotificationRetryTests(TestCase):

    def setUp(self):
        self.customer = create_customer()
        self.order = create_order(self.customer, create_menu_item())

    def test_failed_notification_is_kept_and_retried(self):
        with mock.patch.object(NotificationService, 'send_email_notification', side_effect=OSError('SMTP down')):
            OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED)

        notification = Notification.objects.get(order=self.order)
        self.assertEqual(notification.status, NotificationStatus.FAILED)
        self.assertEqual(notification.attempts, 1)
        self.assertIn('SMTP down', notification.last_error)

        self.assertEqual(NotificationService.retry_failed(), 1)
        notification.refresh_from_db()
        self.assertEqual(notification.status, NotificationStatus.SENT)
        self.assertEqual(notification.attempts, 2)

    def test_retry_gives_up_after_max_attempts(self):
        with mock.patch.object(NotificationService, 'send_email_notification', side_effect=OSError('SMTP down')):
            OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED)
            self.assertEqual(NotificationService.retry_failed(max_attempts=2), 0)
            self.assertEqual(NotificationService.retry_failed(max_attempts=2), 0)

        self.assertEqual(Notification.objects.get(order=self.order).attempts, 2)


class TimelineTests(TestCase):

    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer(first_name='Priya', last_name='Shah')
        self.order = create_order(self.customer, create_menu_item())

    @mock.patch(NOTIFY)
    def test_timeline_lists_placed_event_and_history(self, notify):
        OrderStatusService.update_status(self.order, OrderStatus.CONFIRMED, updated_by=self.admin)
        OrderStatusService.update_status(self.order, OrderStatus.PREPARING, updated_by=self.admin)

        timeline = build_timeline(self.order)

        self.assertEqual([event['status'] for event in timeline], ['PENDING', 'CONFIRMED', 'PREPARING'])
        self.assertEqual(timeline[0]['id'], 'placed')
        self.assertEqual(timeline[0]['actor'], self.customer.display_name)
        self.assertEqual(timeline[2]['description'], 'Kitchen started preparing order')

    def test_timeline_of_new_order(self):
        timeline = build_timeline(self.order)
        self.assertEqual(len(timeline), 1)
        self.assertEqual(timeline[0]['description'], 'Order placed by customer')
