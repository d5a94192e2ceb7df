from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Product
from rentalhub.modules.exceptions import ExternalServiceError
from rentals.models import RentalRequest
from .consumers import NotificationConsumer
from .models import Notification
from .notifications import (
    NewRequestPayload,
    RequestRejectedPayload,
    merge_notification_feeds,
    payload_from_dict,
)
from .registry import ConnectionRegistry
from .services import NotificationDispatcher
from .tasks import deliver_notification_email

User = get_user_model()

API_HEADERS = {'HTTP_X_API_KEY': 'test-api-key'}


class NotificationPayloadTest(TestCase):
    """Test versioned notification payloads"""

    def test_to_dict_carries_kind_and_version(self):
        payload = RequestRejectedPayload(
            rental_request_id='abc', product_title='Tent', reason='Busy')
        data = payload.to_dict()
        self.assertEqual(data['kind'], 'request_rejected')
        self.assertEqual(data['version'], 1)
        self.assertEqual(data['reason'], 'Busy')

    def test_payload_from_dict(self):
        payload = NewRequestPayload(
            rental_request_id='r1', product_id='p1', product_title='Tent',
            customer_name='Ada', start_date='2024-01-01T00:00:00+00:00',
            end_date='2024-01-03T00:00:00+00:00', price='40.00',
            currency='usd')
        self.assertEqual(payload_from_dict(payload.to_dict()), payload)

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(ValueError):
            payload_from_dict({'kind': 'birthday', 'version': 1})

    def test_unknown_version_is_rejected(self):
        data = RequestRejectedPayload(
            rental_request_id='abc', product_title='Tent').to_dict()
        data['version'] = 2
        with self.assertRaises(ValueError):
            payload_from_dict(data)


class MergeNotificationFeedsTest(TestCase):
    """Test merging live and polled notification feeds"""

    def item(self, id_, minutes_ago, title='polled'):
        created = timezone.now() - timedelta(minutes=minutes_ago)
        return {'id': id_, 'title': title, 'created_at': created.isoformat()}

    def test_duplicates_keep_live_copy(self):
        live = [self.item('a', 1, title='live')]
        polled = [self.item('a', 1), self.item('b', 5)]
        merged = merge_notification_feeds(live, polled)
        self.assertEqual([item['id'] for item in merged], ['a', 'b'])
        self.assertEqual(merged[0]['title'], 'live')

    def test_result_is_newest_first_and_bounded(self):
        polled = [self.item(str(i), i) for i in range(30)]
        merged = merge_notification_feeds([], polled, limit=20)
        self.assertEqual(len(merged), 20)
        self.assertEqual(merged[0]['id'], '0')
        self.assertEqual(merged[-1]['id'], '19')

    def test_missing_created_at_sorts_last(self):
        merged = merge_notification_feeds(
            [{'id': 'x'}], [self.item('y', 10)])
        self.assertEqual([item['id'] for item in merged], ['y', 'x'])


class ConnectionRegistryTest(TestCase):

    def test_push_sends_to_user_group(self):
        layer = Mock()
        layer.group_send = AsyncMock()
        registry = ConnectionRegistry(layer)

        registry.push('user-1', {'id': 'n1'})

        layer.group_send.assert_awaited_once_with(
            'notifications_user-1',
            {'type': 'notification.message', 'message': {'id': 'n1'}},
        )

    def test_register_and_unregister(self):
        layer = Mock()
        layer.group_add = AsyncMock()
        layer.group_discard = AsyncMock()
        registry = ConnectionRegistry(layer)

        registry.register('user-1', 'channel-1')
        registry.unregister('user-1', 'channel-1')

        layer.group_add.assert_awaited_once_with(
            'notifications_user-1', 'channel-1')
        layer.group_discard.assert_awaited_once_with(
            'notifications_user-1', 'channel-1')

    def test_push_without_layer_is_skipped(self):
        ConnectionRegistry(None).push('user-1', {'id': 'n1'})


class DispatcherFixturesMixin:

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123',
            first_name='Olu', last_name='Owner')
        self.customer = User.objects.create_user(
            email='customer@test.com', password='testpass123',
            first_name='Ada', last_name='Customer')
        self.product = Product.objects.create(
            owner=self.owner, title='Camping Tent',
            rental_rate=Decimal('10.00'))
        start = timezone.now() + timedelta(days=1)
        self.rental_request = RentalRequest.objects.create(
            product=self.product,
            customer=self.customer,
            start_date=start,
            end_date=start + timedelta(days=2),
            rental_period=2,
            price=Decimal('20.00'),
            status=RentalRequest.ACCEPTED,
        )


class NotificationDispatcherTest(DispatcherFixturesMixin, TestCase):
    """Test notification fan-out"""

    def setUp(self):
        super().setUp()
        self.registry = Mock()
        self.dispatcher = NotificationDispatcher(self.registry)

    @patch('users.services.send_notification_email')
    def test_new_request_goes_to_owner(self, send_email):
        notification = self.dispatcher.notify_new_request(self.rental_request)

        self.assertEqual(notification.user, self.owner)
        self.assertEqual(notification.notification_type, 'new_request')
        self.assertEqual(notification.rental_request, self.rental_request)
        self.assertEqual(notification.data['kind'], 'new_request')
        self.assertEqual(notification.data['customer_name'], 'Ada Customer')
        self.registry.push.assert_called_once_with(
            self.owner.id, notification.to_message())
        send_email.delay.assert_called_once_with(str(notification.id), None)

    @patch('users.services.send_notification_email')
    def test_rejection_goes_to_customer_with_reason(self, send_email):
        notification = self.dispatcher.notify_request_rejected(
            self.rental_request, 'Under maintenance')
        self.assertEqual(notification.user, self.customer)
        self.assertIn('Under maintenance', notification.message)
        self.assertEqual(notification.data['reason'], 'Under maintenance')

    @patch('users.services.send_notification_email')
    def test_push_failure_is_swallowed(self, send_email):
        self.registry.push.side_effect = RuntimeError('layer down')

        notification = self.dispatcher.notify_request_approved(
            self.rental_request)

        self.assertIsNotNone(notification)
        self.assertTrue(Notification.objects.filter(
            pk=notification.pk).exists())
        send_email.delay.assert_called_once()

    @patch('users.services.send_notification_email')
    def test_email_queue_failure_is_swallowed(self, send_email):
        send_email.delay.side_effect = RuntimeError('broker down')
        notification = self.dispatcher.notify_conflicting_rejected(
            self.rental_request)
        self.assertEqual(
            notification.notification_type, Notification.CONFLICTING_REJECTED)

    @patch('users.services.send_notification_email')
    def test_email_respects_user_preference(self, send_email):
        self.customer.email_notifications = False
        self.customer.save()
        self.dispatcher.notify_request_approved(self.rental_request)
        send_email.delay.assert_not_called()

    @patch('users.services.send_notification_email')
    def test_email_can_be_disabled(self, send_email):
        dispatcher = NotificationDispatcher(
            self.registry, email_enabled=False)
        dispatcher.notify_request_approved(self.rental_request)
        send_email.delay.assert_not_called()

    @patch('users.services.deliver_notification_email')
    def test_invoice_email_failure_is_reported(self, deliver):
        deliver.side_effect = RuntimeError('smtp down')
        invoice = Mock(
            id='inv-1', invoice_number='INV-TEST0001',
            amount=Decimal('20.00'), rental_request=self.rental_request)

        with self.assertRaises(ExternalServiceError):
            self.dispatcher.notify_invoice_emailed(
                invoice, 'billing@test.com')

    @patch('users.services.deliver_notification_email')
    def test_invoice_email_is_sent_synchronously(self, deliver):
        invoice = Mock(
            id='inv-1', invoice_number='INV-TEST0001',
            amount=Decimal('20.00'), rental_request=self.rental_request)

        notification = self.dispatcher.notify_invoice_emailed(
            invoice, 'billing@test.com')

        deliver.assert_called_once_with(notification.id, 'billing@test.com')
        self.assertEqual(
            notification.data['recipient_email'], 'billing@test.com')


class NotificationEmailTest(DispatcherFixturesMixin, TestCase):

    def test_deliver_sends_email_and_marks_sent(self):
        notification = Notification.objects.create(
            user=self.customer,
            rental_request=self.rental_request,
            notification_type=Notification.REQUEST_APPROVED,
            title='Rental request approved',
            message='Your request was approved.',
        )

        deliver_notification_email(notification.id)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(
            mail.outbox[0].subject, 'Rental Update: Rental request approved')
        self.assertEqual(mail.outbox[0].to, ['customer@test.com'])
        notification.refresh_from_db()
        self.assertTrue(notification.is_sent)

    def test_deliver_to_explicit_recipient(self):
        notification = Notification.objects.create(
            user=self.customer,
            notification_type=Notification.INVOICE_EMAILED,
            title='Invoice',
            message='Invoice attached.',
        )
        deliver_notification_email(notification.id, 'billing@test.com')
        self.assertEqual(mail.outbox[0].to, ['billing@test.com'])


class NotificationConsumerTest(TestCase):
    """Test the notification socket consumer handlers"""

    def make_consumer(self, user):
        consumer = NotificationConsumer()
        consumer.scope = {'user': user}
        consumer.user = user
        consumer.live_items = []
        consumer.send = AsyncMock()
        consumer.close = AsyncMock()
        return consumer

    async def test_anonymous_connection_is_closed(self):
        consumer = self.make_consumer(AnonymousUser())
        consumer.accept = AsyncMock()

        await consumer.connect()

        consumer.close.assert_awaited_once()
        consumer.accept.assert_not_awaited()

    async def test_pushed_notification_is_relayed(self):
        consumer = self.make_consumer(Mock(is_authenticated=True))
        message = {'id': 'n1', 'title': 'Hi',
                   'created_at': timezone.now().isoformat()}

        await consumer.notification_message(
            {'type': 'notification.message', 'message': message})

        sent = consumer.send.await_args.kwargs['text_data']
        self.assertIn('notification.new', sent)
        self.assertEqual(consumer.live_items, [message])

    async def test_feed_merges_live_and_polled_items(self):
        consumer = self.make_consumer(Mock(is_authenticated=True))
        now = timezone.now()
        live = {'id': 'n1', 'title': 'live',
                'created_at': now.isoformat()}
        consumer.live_items = [live]
        consumer.get_recent_notifications = AsyncMock(return_value=[
            {'id': 'n1', 'title': 'polled', 'created_at': now.isoformat()},
            {'id': 'n2', 'title': 'older',
             'created_at': (now - timedelta(hours=1)).isoformat()},
        ])

        await consumer.send_notifications(20)

        sent = consumer.send.await_args.kwargs['text_data']
        self.assertIn('notification.list', sent)
        self.assertIn('"live"', sent)
        self.assertNotIn('"polled"', sent)
        self.assertIn('"older"', sent)

    async def test_invalid_json_returns_error(self):
        consumer = self.make_consumer(Mock(is_authenticated=True))
        await consumer.receive(text_data='not json')
        sent = consumer.send.await_args.kwargs['text_data']
        self.assertIn('Invalid JSON format', sent)

    async def test_non_object_message_returns_error(self):
        consumer = self.make_consumer(Mock(is_authenticated=True))
        await consumer.receive(text_data='[1]')
        sent = consumer.send.await_args.kwargs['text_data']
        self.assertIn('Message must be a JSON object', sent)


class NotificationAPITest(APITestCase):
    """Test the notification endpoints"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='user@test.com', password='testpass123')
        self.other = User.objects.create_user(
            email='other@test.com', password='testpass123')
        self.unread = Notification.objects.create(
            user=self.user, notification_type=Notification.NEW_REQUEST,
            title='New rental request', message='Someone wants your tent.')
        self.read = Notification.objects.create(
            user=self.user, notification_type=Notification.REQUEST_APPROVED,
            title='Approved', message='Approved.', is_read=True)
        Notification.objects.create(
            user=self.other, notification_type=Notification.NEW_REQUEST,
            title='Not yours', message='Not yours.')
        self.client.force_authenticate(user=self.user)

    def test_list_only_own_notifications(self):
        response = self.client.get(
            reverse('users:notification-list'), **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['count'], 2)

    def test_filter_unread(self):
        response = self.client.get(
            reverse('users:notification-list'), {'is_read': 'false'},
            **API_HEADERS)
        results = response.json()['data']['results']
        self.assertEqual([item['id'] for item in results],
                         [str(self.unread.id)])

    def test_list_requires_api_key(self):
        response = self.client.get(reverse('users:notification-list'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_notification_read(self):
        response = self.client.patch(
            reverse('users:notification-detail', args=[self.unread.id]),
            {'requestType': 'inbound', 'data': {}}, format='json',
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.unread.refresh_from_db()
        self.assertTrue(self.unread.is_read)
        self.assertIsNotNone(self.unread.read_at)

    def test_other_users_notification_is_not_found(self):
        foreign = Notification.objects.get(user=self.other)
        response = self.client.get(
            reverse('users:notification-detail', args=[foreign.id]),
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        response = self.client.post(
            reverse('users:notification-mark-all-read'), **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['updated_count'], 1)
        self.assertFalse(
            Notification.objects.filter(user=self.user, is_read=False).exists())
