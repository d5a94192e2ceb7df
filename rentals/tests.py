import uuid
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import Mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from payments.models import Payment
from products.models import Product
from rentalhub.modules.exceptions import (
    Conflict,
    Forbidden,
    InvalidPriceError,
    InvalidRangeError,
    InvalidState,
    NotFound,
    ValidationError,
)
from .availability import (
    check_availability,
    ranges_overlap,
    unavailable_ranges,
)
from .models import RentalRequest
from .pricing import compute_price, count_periods
from .services import RentalRequestService
from .tasks import expire_stale_pending_requests

User = get_user_model()

API_HEADERS = {'HTTP_X_API_KEY': 'test-api-key'}


def inbound(data):
    return {'requestType': 'inbound', 'data': data}


class RentalFixturesMixin:

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        self.customer = User.objects.create_user(
            email='customer@test.com', password='testpass123')
        self.other_customer = User.objects.create_user(
            email='other@test.com', password='testpass123')
        self.product = Product.objects.create(
            owner=self.owner,
            title='Camping Tent',
            rental_rate=Decimal('10.00'),
        )
        self.start = (timezone.now() + timedelta(days=2)).replace(
            microsecond=0)

    def make_request(self, status=RentalRequest.ACCEPTED, offset_days=0,
                     days=3, customer=None, product=None):
        start = self.start + timedelta(days=offset_days)
        return RentalRequest.objects.create(
            product=product or self.product,
            customer=customer or self.customer,
            start_date=start,
            end_date=start + timedelta(days=days),
            rental_period=days,
            price=Decimal('10.00') * days,
            status=status,
        )


class PricingTest(TestCase):
    """Test period counting and price computation"""

    def setUp(self):
        self.start = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)

    def test_daily_price(self):
        """Test three full days at the daily rate"""
        quote = compute_price(
            Decimal('10.00'), self.start, self.start + timedelta(days=3))
        self.assertEqual(quote.period_count, 3)
        self.assertEqual(quote.price, Decimal('30.00'))

    def test_two_day_range(self):
        quote = compute_price(
            Decimal('20.00'), self.start,
            datetime(2024, 1, 3, tzinfo=dt_timezone.utc), 'daily')
        self.assertEqual(quote.period_count, 2)
        self.assertEqual(quote.price, Decimal('40.00'))

    def test_partial_period_is_billed_in_full(self):
        """Test a day and an hour counts as two days"""
        quote = compute_price(
            Decimal('10.00'), self.start,
            self.start + timedelta(days=1, hours=1))
        self.assertEqual(quote.period_count, 2)
        self.assertEqual(quote.price, Decimal('20.00'))

    def test_weekly_price_scales_daily_rate(self):
        """Test ten days at a weekly unit bills two weeks"""
        quote = compute_price(
            Decimal('10.00'), self.start, self.start + timedelta(days=10),
            'weekly')
        self.assertEqual(quote.period_count, 2)
        self.assertEqual(quote.price, Decimal('140.00'))

    def test_hourly_price(self):
        quote = compute_price(
            Decimal('5.00'), self.start, self.start + timedelta(hours=3),
            'hourly')
        self.assertEqual(quote.period_count, 3)
        self.assertEqual(quote.price, Decimal('15.00'))

    def test_unknown_unit_falls_back_to_daily(self):
        quote = compute_price(
            Decimal('10.00'), self.start, self.start + timedelta(days=2),
            'fortnightly')
        self.assertEqual(quote.period_count, 2)
        self.assertEqual(quote.price, Decimal('20.00'))

    def test_price_is_rounded_to_cents(self):
        quote = compute_price(
            Decimal('3.335'), self.start, self.start + timedelta(days=1))
        self.assertEqual(quote.price, Decimal('3.34'))

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(InvalidRangeError) as ctx:
            count_periods(self.start, self.start - timedelta(days=1), 'daily')
        self.assertIn('end_date', ctx.exception.field_errors)

    def test_empty_range_is_rejected(self):
        with self.assertRaises(InvalidRangeError):
            compute_price(Decimal('10.00'), self.start, self.start)

    def test_zero_rate_is_rejected(self):
        with self.assertRaises(InvalidPriceError):
            compute_price(
                Decimal('0.00'), self.start, self.start + timedelta(days=1))


class AvailabilityTest(RentalFixturesMixin, TestCase):
    """Test overlap detection and the pending request limit"""

    def test_ranges_overlap_is_half_open(self):
        a = self.start
        self.assertTrue(ranges_overlap(
            a, a + timedelta(days=3),
            a + timedelta(days=2), a + timedelta(days=4)))
        self.assertFalse(ranges_overlap(
            a, a + timedelta(days=3),
            a + timedelta(days=3), a + timedelta(days=4)))

    def test_free_product_is_available(self):
        result = check_availability(
            self.product.pk, self.start, self.start + timedelta(days=3))
        self.assertTrue(result.is_available)
        self.assertEqual(result.overlaps, [])

    def test_occupying_request_blocks_overlapping_range(self):
        for status_ in RentalRequest.OCCUPYING_STATUSES:
            RentalRequest.objects.all().delete()
            existing = self.make_request(status=status_)
            result = check_availability(
                self.product.pk,
                self.start + timedelta(days=1),
                self.start + timedelta(days=5))
            self.assertFalse(result.is_available)
            self.assertEqual(result.overlaps, [existing])

    def test_adjacent_range_is_available(self):
        """Test a range starting when another ends does not clash"""
        self.make_request(days=3)
        result = check_availability(
            self.product.pk,
            self.start + timedelta(days=3),
            self.start + timedelta(days=5))
        self.assertTrue(result.is_available)

    def test_non_occupying_requests_do_not_block(self):
        for status_ in (RentalRequest.PENDING, RentalRequest.REJECTED,
                        RentalRequest.CANCELLED, RentalRequest.COMPLETED):
            self.make_request(status=status_)
        result = check_availability(
            self.product.pk, self.start, self.start + timedelta(days=3))
        self.assertTrue(result.is_available)

    def test_invalid_range_is_rejected(self):
        with self.assertRaises(InvalidRangeError):
            check_availability(self.product.pk, self.start, self.start)

    def test_pending_limit_without_recent_acceptance(self):
        """Test the advisory limit trips at two pending requests"""
        self.make_request(status=RentalRequest.PENDING)
        self.make_request(
            status=RentalRequest.PENDING, customer=self.other_customer)
        result = check_availability(
            self.product.pk,
            self.start + timedelta(days=10),
            self.start + timedelta(days=12))
        self.assertEqual(result.pending_count, 2)
        self.assertEqual(result.recent_accepted_count, 0)
        self.assertTrue(result.is_throttled)
        self.assertTrue(result.is_available)

    def test_recent_acceptance_lifts_pending_limit(self):
        self.make_request(status=RentalRequest.PENDING)
        self.make_request(
            status=RentalRequest.PENDING, customer=self.other_customer)
        self.make_request(status=RentalRequest.ACCEPTED, offset_days=20)
        result = check_availability(
            self.product.pk,
            self.start + timedelta(days=10),
            self.start + timedelta(days=12))
        self.assertEqual(result.recent_accepted_count, 1)
        self.assertFalse(result.is_throttled)

    def test_old_acceptance_does_not_lift_pending_limit(self):
        self.make_request(status=RentalRequest.PENDING)
        self.make_request(
            status=RentalRequest.PENDING, customer=self.other_customer)
        accepted = self.make_request(
            status=RentalRequest.ACCEPTED, offset_days=20)
        RentalRequest.objects.filter(pk=accepted.pk).update(
            status_changed_at=timezone.now() - timedelta(hours=30))
        result = check_availability(
            self.product.pk,
            self.start + timedelta(days=10),
            self.start + timedelta(days=12))
        self.assertTrue(result.is_throttled)

    def test_unavailable_ranges_lists_occupying_requests(self):
        self.make_request(status=RentalRequest.ACCEPTED)
        self.make_request(status=RentalRequest.PENDING, offset_days=5)
        self.make_request(status=RentalRequest.CANCELLED, offset_days=10)
        data = unavailable_ranges(self.product.pk)
        self.assertEqual(len(data['unavailable_ranges']), 1)
        self.assertEqual(
            data['unavailable_ranges'][0]['status'], RentalRequest.ACCEPTED)
        info = data['request_limit_info']
        self.assertEqual(info['pending_requests_count'], 1)
        self.assertEqual(info['max_requests'], 2)
        self.assertFalse(info['is_at_limit'])


class RentalRequestModelTest(RentalFixturesMixin, TestCase):

    def test_transition_updates_status_timestamp(self):
        rental_request = self.make_request(status=RentalRequest.PENDING)
        before = rental_request.status_changed_at
        rental_request.transition_to(RentalRequest.ACCEPTED)
        rental_request.refresh_from_db()
        self.assertEqual(rental_request.status, RentalRequest.ACCEPTED)
        self.assertGreaterEqual(rental_request.status_changed_at, before)

    def test_terminal_status_cannot_change(self):
        rental_request = self.make_request(status=RentalRequest.CANCELLED)
        self.assertTrue(rental_request.is_terminal)
        with self.assertRaises(InvalidState):
            rental_request.transition_to(RentalRequest.ACCEPTED)

    def test_pending_cannot_jump_to_paid(self):
        rental_request = self.make_request(status=RentalRequest.PENDING)
        self.assertFalse(rental_request.can_transition_to(RentalRequest.PAID))


class RentalRequestServiceTest(RentalFixturesMixin, TestCase):
    """Test the rental request lifecycle"""

    def setUp(self):
        super().setUp()
        self.dispatcher = Mock()
        self.service = RentalRequestService(dispatcher=self.dispatcher)

    def create(self, customer=None, offset_days=0, days=3, **kwargs):
        start = self.start + timedelta(days=offset_days)
        return self.service.create_request(
            customer or self.customer,
            self.product.pk,
            start,
            start + timedelta(days=days),
            **kwargs,
        )

    def test_create_request_is_accepted_instantly(self):
        """Test the default policy accepts requests on creation"""
        with self.captureOnCommitCallbacks(execute=True):
            rental_request, availability = self.create(
                pickup_location='Depot A')

        self.assertEqual(rental_request.status, RentalRequest.ACCEPTED)
        self.assertEqual(rental_request.rental_period, 3)
        self.assertEqual(rental_request.price, Decimal('30.00'))
        self.assertEqual(rental_request.pickup_location, 'Depot A')
        self.assertTrue(availability.is_available)
        self.dispatcher.notify_new_request.assert_called_once_with(
            rental_request)

    def test_notification_waits_for_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.create()
        self.dispatcher.notify_new_request.assert_not_called()
        self.assertEqual(len(callbacks), 1)

    def test_notification_failure_keeps_request(self):
        self.dispatcher.notify_new_request.side_effect = RuntimeError(
            'channel layer down')
        with self.captureOnCommitCallbacks(execute=True):
            rental_request, _ = self.create()

        self.dispatcher.notify_new_request.assert_called_once_with(
            rental_request)
        self.assertEqual(
            RentalRequest.objects.get(pk=rental_request.pk).status,
            RentalRequest.ACCEPTED)

    def test_approval_survives_notification_failure(self):
        pending = self.make_request(status=RentalRequest.PENDING)
        self.dispatcher.notify_request_approved.side_effect = RuntimeError(
            'channel layer down')
        with self.captureOnCommitCallbacks(execute=True):
            self.service.approve(pending.pk, self.owner)
        pending.refresh_from_db()
        self.assertEqual(pending.status, RentalRequest.ACCEPTED)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_manual_policy_creates_pending_request(self):
        rental_request, _ = self.create()
        self.assertEqual(rental_request.status, RentalRequest.PENDING)

    def test_weekly_unit_prices_from_daily_rate(self):
        rental_request, _ = self.create(days=10, period_unit='weekly')
        self.assertEqual(rental_request.rental_period, 2)
        self.assertEqual(rental_request.price, Decimal('140.00'))

    def test_owner_cannot_rent_own_product(self):
        with self.assertRaises(ValidationError):
            self.create(customer=self.owner)
        self.assertFalse(RentalRequest.objects.exists())

    def test_overlapping_request_is_rejected(self):
        self.create()
        with self.assertRaises(Conflict) as ctx:
            self.create(customer=self.other_customer, offset_days=1)
        self.assertEqual(len(ctx.exception.field_errors['overlaps']), 1)
        self.assertEqual(RentalRequest.objects.count(), 1)

    def test_adjacent_request_is_allowed(self):
        self.create(days=3)
        rental_request, _ = self.create(
            customer=self.other_customer, offset_days=3)
        self.assertEqual(rental_request.status, RentalRequest.ACCEPTED)

    def test_rented_product_is_rejected(self):
        Product.objects.filter(pk=self.product.pk).update(
            status=Product.RENTED)
        with self.assertRaises(Conflict):
            self.create()

    def test_unknown_product_is_not_found(self):
        with self.assertRaises(NotFound):
            self.service.create_request(
                self.customer, uuid.uuid4(), self.start,
                self.start + timedelta(days=1))

    def test_invalid_range_is_rejected(self):
        with self.assertRaises(InvalidRangeError):
            self.service.create_request(
                self.customer, self.product.pk, self.start, self.start)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_approve_cancels_overlapping_pending_requests(self):
        """Test approving one request cancels the pending ones it overlaps"""
        first, _ = self.create()
        second, _ = self.create(customer=self.other_customer, offset_days=1)
        later, _ = self.create(customer=self.other_customer, offset_days=10)

        with self.captureOnCommitCallbacks(execute=True):
            approved = self.service.approve(first.pk, self.owner)

        self.assertEqual(approved.status, RentalRequest.ACCEPTED)
        second.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(second.status, RentalRequest.CANCELLED)
        self.assertEqual(later.status, RentalRequest.PENDING)
        self.dispatcher.notify_conflicting_rejected.assert_called_once()
        self.dispatcher.notify_request_approved.assert_called_once_with(
            approved)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_approve_fails_when_dates_taken(self):
        pending, _ = self.create()
        self.make_request(
            status=RentalRequest.ACCEPTED, customer=self.other_customer,
            offset_days=1)
        with self.assertRaises(Conflict):
            self.service.approve(pending.pk, self.owner)
        pending.refresh_from_db()
        self.assertEqual(pending.status, RentalRequest.PENDING)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_only_owner_can_approve(self):
        pending, _ = self.create()
        with self.assertRaises(Forbidden):
            self.service.approve(pending.pk, self.customer)

    def test_approve_requires_pending_request(self):
        accepted, _ = self.create()
        with self.assertRaises(InvalidState):
            self.service.approve(accepted.pk, self.owner)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_reject_pending_request(self):
        pending, _ = self.create()
        with self.captureOnCommitCallbacks(execute=True):
            rejected = self.service.reject(
                pending.pk, self.owner, reason='Under maintenance')
        self.assertEqual(rejected.status, RentalRequest.REJECTED)
        self.dispatcher.notify_request_rejected.assert_called_once_with(
            rejected, 'Under maintenance')

    def test_customer_cancels_accepted_request(self):
        accepted, _ = self.create()
        cancelled = self.service.cancel(accepted.pk, self.customer)
        self.assertEqual(cancelled.status, RentalRequest.CANCELLED)
        # The dates are free again
        rental_request, _ = self.create(customer=self.other_customer)
        self.assertEqual(rental_request.status, RentalRequest.ACCEPTED)

    def test_cancel_fails_pending_payment(self):
        accepted, _ = self.create()
        payment = Payment.objects.create(
            rental_request=accepted, payment_method=Payment.CARD,
            amount=accepted.price, currency='usd',
            transaction_id='pi_test_1')

        self.service.cancel(accepted.pk, self.customer)

        payment.refresh_from_db()
        self.assertEqual(payment.payment_status, Payment.FAILED)

    def test_stranger_cannot_cancel(self):
        accepted, _ = self.create()
        with self.assertRaises(Forbidden):
            self.service.cancel(accepted.pk, self.other_customer)

    def test_completed_request_cannot_be_cancelled(self):
        completed = self.make_request(status=RentalRequest.COMPLETED)
        with self.assertRaises(InvalidState):
            self.service.cancel(completed.pk, self.customer)

    def test_complete_releases_product(self):
        active = self.make_request(status=RentalRequest.ACTIVE)
        Product.objects.filter(pk=self.product.pk).update(
            status=Product.RENTED)

        completed = self.service.complete(active.pk, self.owner)

        self.assertEqual(completed.status, RentalRequest.COMPLETED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.AVAILABLE)

    def test_complete_keeps_product_held_by_other_rental(self):
        """Test the product stays rented while another paid rental holds it"""
        first = self.make_request(status=RentalRequest.ACTIVE)
        self.make_request(
            status=RentalRequest.PAID, customer=self.other_customer,
            offset_days=5)
        Product.objects.filter(pk=self.product.pk).update(
            status=Product.RENTED)

        self.service.complete(first.pk, self.customer)

        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.RENTED)

    def test_pending_request_cannot_be_completed(self):
        pending = self.make_request(status=RentalRequest.PENDING)
        with self.assertRaises(InvalidState):
            self.service.complete(pending.pk, self.owner)

    def test_update_status_rejects_payment_driven_statuses(self):
        accepted, _ = self.create()
        with self.assertRaises(ValidationError):
            self.service.update_status(
                accepted.pk, self.owner, RentalRequest.ACTIVE)

    def test_get_for_party(self):
        accepted, _ = self.create()
        self.assertEqual(
            self.service.get_for_party(accepted.pk, self.owner), accepted)
        with self.assertRaises(Forbidden):
            self.service.get_for_party(accepted.pk, self.other_customer)
        with self.assertRaises(NotFound):
            self.service.get_for_party('not-a-uuid', self.owner)

    def test_active_rentals_lists_occupying_requests(self):
        accepted, _ = self.create()
        self.make_request(status=RentalRequest.CANCELLED, offset_days=10)
        self.assertEqual(
            list(self.service.active_rentals(self.customer)), [accepted])

    def test_list_for_user_as_owner(self):
        accepted, _ = self.create()
        self.assertEqual(
            list(self.service.list_for_user(self.owner, as_owner=True)),
            [accepted])
        self.assertEqual(list(self.service.list_for_user(self.owner)), [])


class ExpireStalePendingRequestsTest(RentalFixturesMixin, TestCase):

    def test_expires_pending_requests_that_already_started(self):
        stale = self.make_request(
            status=RentalRequest.PENDING, offset_days=-5)
        upcoming = self.make_request(
            status=RentalRequest.PENDING, offset_days=5)

        result = expire_stale_pending_requests()

        self.assertEqual(result, "Expired 1 rental requests")
        stale.refresh_from_db()
        upcoming.refresh_from_db()
        self.assertEqual(stale.status, RentalRequest.CANCELLED)
        self.assertEqual(upcoming.status, RentalRequest.PENDING)


class RentalRequestAPITest(RentalFixturesMixin, APITestCase):
    """Test the rental request endpoints"""

    def setUp(self):
        super().setUp()
        self.list_url = reverse('rentals:rental-request-list')

    def create_payload(self, offset_days=0, days=3):
        start = self.start + timedelta(days=offset_days)
        return inbound({
            'product_id': str(self.product.pk),
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(days=days)).isoformat(),
            'rental_period_unit': 'daily',
        })

    def test_create_rental_request(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.list_url, self.create_payload(), format='json',
            **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertTrue(body['status'])
        rental = body['data']['rental_request']
        self.assertEqual(rental['status'], RentalRequest.ACCEPTED)
        self.assertEqual(rental['price'], '30.00')
        self.assertIn('is_at_limit', body['data']['request_limit_info'])

    def test_create_requires_api_key(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.list_url, self.create_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.json()['status'])

    def test_create_requires_authentication(self):
        response = self.client.post(
            self.list_url, self.create_payload(), format='json',
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_rejects_bad_envelope(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.list_url, {'data': {}}, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_rejects_inverted_dates(self):
        self.client.force_authenticate(user=self.customer)
        payload = inbound({
            'product_id': str(self.product.pk),
            'start_date': (self.start + timedelta(days=2)).isoformat(),
            'end_date': self.start.isoformat(),
        })
        response = self.client.post(
            self.list_url, payload, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_overlapping_create_returns_conflict(self):
        self.make_request(customer=self.other_customer)
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.list_url, self.create_payload(offset_days=1), format='json',
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_list_requests_as_owner(self):
        self.make_request()
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(
            self.list_url, {'as_owner': 'true'}, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['count'], 1)

    @override_settings(RENTAL_APPROVAL_POLICY='manual')
    def test_owner_rejects_request(self):
        pending = self.make_request(status=RentalRequest.PENDING)
        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(
            reverse('rentals:rental-request-detail', args=[pending.pk]),
            inbound({'status': 'rejected', 'reason': 'Booked offline'}),
            format='json', **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.json()['data']['status'], RentalRequest.REJECTED)

    def test_customer_cannot_approve(self):
        pending = self.make_request(status=RentalRequest.PENDING)
        self.client.force_authenticate(user=self.customer)
        response = self.client.patch(
            reverse('rentals:rental-request-detail', args=[pending.pk]),
            inbound({'status': 'accepted'}), format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_hidden_from_strangers(self):
        rental_request = self.make_request()
        self.client.force_authenticate(user=self.other_customer)
        response = self.client.get(
            reverse('rentals:rental-request-detail', args=[rental_request.pk]),
            **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_active_rentals(self):
        self.make_request()
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(
            reverse('rentals:active-rentals'), **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.json()['data']), 1)


class AvailabilityAPITest(RentalFixturesMixin, APITestCase):

    def setUp(self):
        super().setUp()
        self.url = reverse('rentals:availability')

    def test_availability_is_public(self):
        self.make_request()
        response = self.client.get(
            self.url, {'product_id': str(self.product.pk)}, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(len(data['unavailable_ranges']), 1)
        self.assertIn('request_limit_info', data)

    def test_product_id_is_required(self):
        response = self.client.get(self.url, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_product(self):
        response = self.client.get(
            self.url, {'product_id': str(uuid.uuid4())}, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_malformed_product_id(self):
        response = self.client.get(
            self.url, {'product_id': 'nope'}, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
