import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock, patch

import stripe
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Product
from rentalhub.modules.exceptions import (
    DuplicatePayment,
    ExternalServiceError,
    Forbidden,
    InvalidState,
    ValidationError,
)
from rentalhub.modules.payment_service import (
    PaymentIntent,
    StripePaymentProvider,
)
from rentals.models import RentalRequest
from rentals.services import RentalRequestService
from users.services import NotificationDispatcher
from .models import Invoice, InvoiceDownload, Payment
from .services import InvoiceService, PaymentService, to_minor_units

User = get_user_model()

API_HEADERS = {'HTTP_X_API_KEY': 'test-api-key'}


class FakePaymentProvider:
    """In-memory stand-in for the Stripe provider."""

    def __init__(self, fail=False):
        self.fail = fail
        self.intents = []
        self.refunds = []

    def create_payment_intent(self, amount_minor_units, currency, metadata):
        if self.fail:
            raise ExternalServiceError("Payment provider error: card declined")
        self.intents.append((amount_minor_units, currency, metadata))
        number = len(self.intents)
        return PaymentIntent(
            id=f'pi_test_{number}', client_secret=f'pi_test_{number}_secret')

    def refund(self, intent_id):
        self.refunds.append(intent_id)

    def construct_event(self, payload, signature):
        if signature != 'valid-signature':
            raise ExternalServiceError("Invalid webhook signature")
        return json.loads(payload)


def webhook_event(event_type, intent_id):
    return json.dumps({
        'type': event_type,
        'data': {'object': {'id': intent_id}},
    })


class PaymentFixturesMixin:

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        self.customer = User.objects.create_user(
            email='customer@test.com', password='testpass123')
        self.stranger = User.objects.create_user(
            email='stranger@test.com', password='testpass123')
        self.product = Product.objects.create(
            owner=self.owner, title='Camping Tent',
            rental_rate=Decimal('10.00'))
        start = timezone.now() + timedelta(days=1)
        self.rental_request = RentalRequest.objects.create(
            product=self.product,
            customer=self.customer,
            start_date=start,
            end_date=start + timedelta(days=3),
            rental_period=3,
            price=Decimal('30.00'),
            status=RentalRequest.ACCEPTED,
        )
        self.provider = FakePaymentProvider()
        self.dispatcher = Mock()
        self.service = PaymentService(
            provider=self.provider, dispatcher=self.dispatcher)


class StripePaymentProviderTest(TestCase):
    """Test the Stripe boundary"""

    @patch('rentalhub.modules.payment_service.stripe.PaymentIntent.create')
    def test_create_payment_intent(self, create):
        create.return_value = Mock(id='pi_123', client_secret='pi_123_secret')
        provider = StripePaymentProvider(api_key='sk_test_key')

        intent = provider.create_payment_intent(
            3000, 'USD', {'rental_request_id': 42})

        self.assertEqual(intent, PaymentIntent('pi_123', 'pi_123_secret'))
        kwargs = create.call_args.kwargs
        self.assertEqual(kwargs['amount'], 3000)
        self.assertEqual(kwargs['currency'], 'usd')
        self.assertEqual(kwargs['metadata'], {'rental_request_id': '42'})
        self.assertEqual(kwargs['api_key'], 'sk_test_key')

    @patch('rentalhub.modules.payment_service.stripe.PaymentIntent.create')
    def test_stripe_error_is_wrapped(self, create):
        create.side_effect = stripe.StripeError('Your card was declined.')
        with self.assertRaises(ExternalServiceError):
            StripePaymentProvider().create_payment_intent(100, 'usd', {})

    @patch('rentalhub.modules.payment_service.stripe.Webhook.construct_event')
    def test_bad_signature_is_wrapped(self, construct_event):
        construct_event.side_effect = stripe.SignatureVerificationError(
            'No signatures found', 'bad')
        with self.assertRaises(ExternalServiceError):
            StripePaymentProvider().construct_event(b'{}', 'bad')

    def test_minor_units(self):
        self.assertEqual(to_minor_units(Decimal('30.00')), 3000)
        self.assertEqual(to_minor_units(Decimal('19.99')), 1999)


class PaymentCreationTest(PaymentFixturesMixin, TestCase):
    """Test creating the payment of a rental request"""

    def test_offline_payment(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)

        self.assertTrue(result.is_offline)
        self.assertIsNone(result.client_secret)
        self.assertEqual(result.payment.payment_status, Payment.PENDING)
        self.assertEqual(result.payment.amount, Decimal('30.00'))
        self.assertEqual(self.provider.intents, [])

        invoice = Invoice.objects.get(rental_request=self.rental_request)
        self.assertEqual(invoice.amount, Decimal('30.00'))
        self.assertEqual(invoice.invoice_status, Invoice.UNPAID)
        self.assertTrue(invoice.invoice_number.startswith('INV-'))
        self.assertGreater(invoice.due_date, timezone.now())

    def test_online_payment_opens_intent(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD)

        self.assertFalse(result.is_offline)
        self.assertEqual(result.client_secret, 'pi_test_1_secret')
        self.assertEqual(result.payment.transaction_id, 'pi_test_1')
        amount, currency, metadata = self.provider.intents[0]
        self.assertEqual(amount, 3000)
        self.assertEqual(currency, 'usd')
        self.assertEqual(
            set(metadata), {'rental_request_id', 'customer_id', 'product_id'})

    def test_provider_failure_leaves_nothing_behind(self):
        self.service = PaymentService(
            provider=FakePaymentProvider(fail=True),
            dispatcher=self.dispatcher)
        with self.assertRaises(ExternalServiceError):
            self.service.create_payment(
                self.customer, self.rental_request.pk, Payment.CARD)
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Invoice.objects.exists())

    def test_duplicate_payment_is_rejected(self):
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        with self.assertRaises(DuplicatePayment):
            self.service.create_payment(
                self.customer, self.rental_request.pk, Payment.CARD)
        self.assertEqual(Payment.objects.count(), 1)

    def test_concurrent_duplicate_hits_unique_constraint(self):
        """Test the one-to-one constraint catches a racing insert"""
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)

        with patch.object(Payment.objects, 'filter') as mocked_filter:
            mocked_filter.return_value.exists.return_value = False
            with self.assertRaises(DuplicatePayment):
                self.service.create_payment(
                    self.customer, self.rental_request.pk, Payment.OFFLINE)
        self.assertEqual(Payment.objects.count(), 1)

    def test_only_customer_can_pay(self):
        with self.assertRaises(Forbidden):
            self.service.create_payment(
                self.owner, self.rental_request.pk, Payment.OFFLINE)

    def test_pending_request_cannot_be_paid(self):
        RentalRequest.objects.filter(pk=self.rental_request.pk).update(
            status=RentalRequest.PENDING)
        with self.assertRaises(InvalidState):
            self.service.create_payment(
                self.customer, self.rental_request.pk, Payment.OFFLINE)

    def test_unknown_method_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.create_payment(
                self.customer, self.rental_request.pk, 'bitcoin')


class PaymentConfirmationTest(PaymentFixturesMixin, TestCase):
    """Test confirming payments and the completion cascade"""

    def test_completed_payment_activates_rental(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)

        with self.captureOnCommitCallbacks(execute=True):
            payment = self.service.confirm_payment(
                result.payment.pk, Payment.COMPLETED, actor=self.owner)

        self.assertEqual(payment.payment_status, Payment.COMPLETED)
        self.assertIsNotNone(payment.payment_date)
        self.rental_request.refresh_from_db()
        self.product.refresh_from_db()
        invoice = Invoice.objects.get(rental_request=self.rental_request)
        self.assertEqual(self.rental_request.status, RentalRequest.ACTIVE)
        self.assertEqual(self.product.status, Product.RENTED)
        self.assertEqual(invoice.invoice_status, Invoice.PAID)
        self.assertIsNotNone(invoice.paid_date)
        self.dispatcher.notify_payment_completed.assert_called_once_with(
            payment)
        self.dispatcher.notify_payment_confirmed.assert_called_once_with(
            payment)

    def test_cascade_survives_notification_failure(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        self.dispatcher.notify_payment_completed.side_effect = RuntimeError(
            'channel layer down')

        with self.captureOnCommitCallbacks(execute=True):
            self.service.confirm_payment(
                result.payment.pk, Payment.COMPLETED, actor=self.owner)

        self.rental_request.refresh_from_db()
        self.assertEqual(
            Payment.objects.get(pk=result.payment.pk).payment_status,
            Payment.COMPLETED)
        self.assertEqual(self.rental_request.status, RentalRequest.ACTIVE)
        self.dispatcher.notify_payment_confirmed.assert_called_once()

    def test_repeated_confirmation_changes_nothing(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        self.service.confirm_payment(
            result.payment.pk, Payment.COMPLETED, actor=self.owner)
        first_date = Payment.objects.get(pk=result.payment.pk).payment_date

        with self.assertRaises(InvalidState):
            self.service.confirm_payment(
                result.payment.pk, Payment.COMPLETED, actor=self.owner)
        self.assertEqual(
            Payment.objects.get(pk=result.payment.pk).payment_date,
            first_date)

    def test_customer_cannot_confirm_offline_payment(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        with self.assertRaises(Forbidden):
            self.service.confirm_payment(
                result.payment.pk, Payment.COMPLETED, actor=self.customer)
        with self.assertRaises(Forbidden):
            self.service.confirm_payment(
                result.payment.pk, Payment.COMPLETED, actor=None)

    def test_failed_payment_keeps_rental_accepted(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD)
        self.service.confirm_payment(result.payment.pk, Payment.FAILED)
        self.rental_request.refresh_from_db()
        self.assertEqual(self.rental_request.status, RentalRequest.ACCEPTED)

    def test_refund_online_payment(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD)
        self.service.confirm_payment(result.payment.pk, Payment.COMPLETED)

        payment = self.service.confirm_payment(
            result.payment.pk, Payment.REFUNDED, actor=self.owner)

        self.assertEqual(payment.payment_status, Payment.REFUNDED)
        self.assertEqual(self.provider.refunds, ['pi_test_1'])

    def test_pending_payment_cannot_be_refunded(self):
        result = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD)
        with self.assertRaises(InvalidState):
            self.service.confirm_payment(
                result.payment.pk, Payment.REFUNDED, actor=self.owner)


class PaymentWebhookTest(PaymentFixturesMixin, TestCase):
    """Test provider webhook handling"""

    def setUp(self):
        super().setUp()
        self.payment = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD).payment

    def test_succeeded_event_completes_payment(self):
        processed = self.service.handle_webhook(
            webhook_event('payment_intent.succeeded', 'pi_test_1'),
            'valid-signature')
        self.assertTrue(processed)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.COMPLETED)

    def test_repeated_event_is_acknowledged(self):
        event = webhook_event('payment_intent.succeeded', 'pi_test_1')
        self.service.handle_webhook(event, 'valid-signature')
        self.assertTrue(self.service.handle_webhook(event, 'valid-signature'))
        self.rental_request.refresh_from_db()
        self.assertEqual(self.rental_request.status, RentalRequest.ACTIVE)

    def test_success_after_cancellation_is_not_acknowledged(self):
        RentalRequestService(dispatcher=Mock()).cancel(
            self.rental_request.pk, self.customer)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.FAILED)

        with self.assertLogs('payments.services', level='ERROR'):
            processed = self.service.handle_webhook(
                webhook_event('payment_intent.succeeded', 'pi_test_1'),
                'valid-signature')

        self.assertFalse(processed)
        self.payment.refresh_from_db()
        self.rental_request.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.FAILED)
        self.assertEqual(
            self.rental_request.status, RentalRequest.CANCELLED)
        self.assertEqual(self.product.status, Product.AVAILABLE)

    def test_failed_event_marks_payment_failed(self):
        self.service.handle_webhook(
            webhook_event('payment_intent.payment_failed', 'pi_test_1'),
            'valid-signature')
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.FAILED)

    def test_unrelated_event_is_ignored(self):
        self.assertTrue(self.service.handle_webhook(
            webhook_event('charge.updated', 'pi_test_1'), 'valid-signature'))
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.PENDING)

    def test_unknown_intent(self):
        self.assertFalse(self.service.handle_webhook(
            webhook_event('payment_intent.succeeded', 'pi_other'),
            'valid-signature'))

    def test_bad_signature(self):
        self.assertFalse(self.service.handle_webhook(
            webhook_event('payment_intent.succeeded', 'pi_test_1'),
            'forged'))
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.PENDING)


class InvoiceServiceTest(PaymentFixturesMixin, TestCase):
    """Test invoice email and download tracking"""

    def setUp(self):
        super().setUp()
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        self.invoice = Invoice.objects.get(rental_request=self.rental_request)
        self.invoice_service = InvoiceService(dispatcher=self.dispatcher)

    def test_email_defaults_to_customer(self):
        self.invoice_service.email_invoice(self.invoice.pk, self.owner)
        self.dispatcher.notify_invoice_emailed.assert_called_once_with(
            self.invoice, 'customer@test.com', raise_on_failure=True)

    def test_email_failure_is_reported(self):
        self.dispatcher.notify_invoice_emailed.side_effect = (
            ExternalServiceError("Failed to send invoice_emailed email"))
        with self.assertRaises(ExternalServiceError):
            self.invoice_service.email_invoice(
                self.invoice.pk, self.customer, 'billing@test.com')

    def test_email_is_delivered(self):
        invoice_service = InvoiceService(
            dispatcher=NotificationDispatcher(Mock()))
        invoice_service.email_invoice(
            self.invoice.pk, self.customer, 'billing@test.com')

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['billing@test.com'])
        self.assertIn(self.invoice.invoice_number, mail.outbox[0].subject)

    def test_downloads_are_recorded(self):
        self.invoice_service.record_download(self.invoice.pk, self.customer)
        self.invoice_service.record_download(self.invoice.pk, self.owner)

        history = list(
            self.invoice_service.download_history(self.invoice.pk, self.owner))
        self.assertEqual(len(history), 2)
        self.assertEqual(
            {download.user for download in history},
            {self.customer, self.owner})

    def test_stranger_cannot_see_invoice(self):
        with self.assertRaises(Forbidden):
            self.invoice_service.record_download(
                self.invoice.pk, self.stranger)
        self.assertFalse(InvoiceDownload.objects.exists())


class PaymentAPITest(PaymentFixturesMixin, APITestCase):
    """Test the payment endpoints"""

    def pay(self, method):
        return self.client.post(
            reverse('payments:payment-create'),
            {'requestType': 'inbound', 'data': {
                'rental_request_id': str(self.rental_request.pk),
                'payment_method': method}},
            format='json', **API_HEADERS)

    def test_create_offline_payment(self):
        self.client.force_authenticate(user=self.customer)
        response = self.pay(Payment.OFFLINE)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()['data']
        self.assertTrue(data['is_offline'])
        self.assertIsNone(data['client_secret'])
        self.assertEqual(data['payment']['amount'], '30.00')

    @patch('payments.services.get_payment_provider')
    def test_create_card_payment(self, get_provider):
        get_provider.return_value = FakePaymentProvider()
        self.client.force_authenticate(user=self.customer)
        response = self.pay(Payment.CARD)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(
            response.json()['data']['client_secret'], 'pi_test_1_secret')

    def test_duplicate_payment_conflict(self):
        self.client.force_authenticate(user=self.customer)
        self.pay(Payment.OFFLINE)
        response = self.pay(Payment.OFFLINE)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_owner_confirms_payment(self):
        payment = self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE).payment
        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(
            reverse('payments:payment-detail', args=[payment.pk]),
            {'requestType': 'inbound', 'data': {'payment_status': 'completed'}},
            format='json', **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.json()['data']['payment_status'], Payment.COMPLETED)
        self.rental_request.refresh_from_db()
        self.assertEqual(self.rental_request.status, RentalRequest.ACTIVE)

    @patch('payments.services.get_payment_provider')
    def test_webhook(self, get_provider):
        get_provider.return_value = self.provider
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.CARD)
        url = reverse('payments:payment-webhook')

        response = self.client.post(
            url, webhook_event('payment_intent.succeeded', 'pi_test_1'),
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE='valid-signature')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(
            url, webhook_event('payment_intent.succeeded', 'pi_test_1'),
            content_type='application/json', HTTP_STRIPE_SIGNATURE='forged')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invoice_download_and_history(self):
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        invoice = Invoice.objects.get(rental_request=self.rental_request)
        self.client.force_authenticate(user=self.customer)

        response = self.client.get(
            reverse('payments:invoice-detail', args=[invoice.pk]),
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.json()['data']['invoice_number'], invoice.invoice_number)

        response = self.client.get(
            reverse('payments:invoice-downloads', args=[invoice.pk]),
            **API_HEADERS)
        self.assertEqual(len(response.json()['data']), 1)

    def test_email_invoice(self):
        self.service.create_payment(
            self.customer, self.rental_request.pk, Payment.OFFLINE)
        invoice = Invoice.objects.get(rental_request=self.rental_request)
        self.client.force_authenticate(user=self.customer)

        response = self.client.post(
            reverse('payments:invoice-email', args=[invoice.pk]),
            {'requestType': 'inbound', 'data': {}},
            format='json', **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mail.outbox[-1].to, ['customer@test.com'])
