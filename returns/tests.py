from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from payments.models import Invoice, Payment
from payments.services import PaymentService
from products.models import Product
from rentalhub.modules.exceptions import (
    AlreadyExists,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from rentals.models import RentalRequest
from rentals.services import RentalRequestService
from .models import DamageAssessment, ProductReturn
from .services import ReturnService

User = get_user_model()

API_HEADERS = {'HTTP_X_API_KEY': 'test-api-key'}


class ReturnFixturesMixin:

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        self.customer = User.objects.create_user(
            email='customer@test.com', password='testpass123')
        self.stranger = User.objects.create_user(
            email='stranger@test.com', password='testpass123')
        self.product = Product.objects.create(
            owner=self.owner, title='Camping Tent',
            rental_rate=Decimal('10.00'), status=Product.RENTED)
        start = timezone.now() - timedelta(days=1)
        self.rental_request = RentalRequest.objects.create(
            product=self.product,
            customer=self.customer,
            start_date=start,
            end_date=start + timedelta(days=3),
            rental_period=3,
            price=Decimal('30.00'),
            status=RentalRequest.ACTIVE,
        )
        self.dispatcher = Mock()
        self.service = ReturnService(dispatcher=self.dispatcher)


class ReturnWorkflowTest(ReturnFixturesMixin, TestCase):
    """Test the return lifecycle"""

    def test_initiate_and_progress(self):
        product_return = self.service.initiate_return(
            self.rental_request.pk, self.customer)
        self.assertEqual(product_return.return_status, ProductReturn.INITIATED)
        self.assertEqual(product_return.initiated_by, self.customer)

        product_return = self.service.mark_in_progress(
            self.rental_request.pk, self.owner)
        self.assertEqual(
            product_return.return_status, ProductReturn.IN_PROGRESS)

    def test_in_progress_requires_initiated_return(self):
        with self.assertRaises(NotFound):
            self.service.mark_in_progress(self.rental_request.pk, self.owner)

    def test_confirm_completes_rental_and_releases_product(self):
        with self.captureOnCommitCallbacks(execute=True):
            product_return = self.service.confirm_return(
                self.rental_request.pk, self.customer,
                signature='data:image/png;base64,AAAA',
                condition_notes='Clean and dry')

        self.assertEqual(product_return.return_status, ProductReturn.COMPLETED)
        self.assertIsNotNone(product_return.return_date)
        self.assertEqual(product_return.condition_notes, 'Clean and dry')
        self.rental_request.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.rental_request.status, RentalRequest.COMPLETED)
        self.assertEqual(self.product.status, Product.AVAILABLE)
        self.dispatcher.notify_return_confirmed.assert_called_once_with(
            product_return)

    def test_confirm_survives_notification_failure(self):
        self.dispatcher.notify_return_confirmed.side_effect = RuntimeError(
            'channel layer down')
        with self.captureOnCommitCallbacks(execute=True):
            product_return = self.service.confirm_return(
                self.rental_request.pk, self.customer)

        self.rental_request.refresh_from_db()
        self.assertTrue(
            ProductReturn.objects.filter(
                pk=product_return.pk,
                return_status=ProductReturn.COMPLETED).exists())
        self.assertEqual(self.rental_request.status, RentalRequest.COMPLETED)

    def test_confirm_after_initiation(self):
        self.service.initiate_return(self.rental_request.pk, self.customer)
        self.service.mark_in_progress(self.rental_request.pk, self.owner)
        product_return = self.service.confirm_return(
            self.rental_request.pk, self.owner)
        self.assertEqual(product_return.return_status, ProductReturn.COMPLETED)
        self.assertEqual(product_return.initiated_by, self.customer)

    def test_confirm_twice_is_rejected(self):
        self.service.confirm_return(self.rental_request.pk, self.customer)
        with self.assertRaises(InvalidState):
            self.service.confirm_return(self.rental_request.pk, self.customer)
        self.assertEqual(ProductReturn.objects.count(), 1)

    def test_confirm_requires_occupying_rental(self):
        RentalRequest.objects.filter(pk=self.rental_request.pk).update(
            status=RentalRequest.CANCELLED)
        with self.assertRaises(InvalidState):
            self.service.confirm_return(self.rental_request.pk, self.customer)
        self.assertFalse(ProductReturn.objects.exists())

    def test_stranger_cannot_confirm(self):
        with self.assertRaises(Forbidden):
            self.service.confirm_return(self.rental_request.pk, self.stranger)

    def test_confirm_keeps_product_held_by_other_rental(self):
        start = timezone.now() + timedelta(days=5)
        RentalRequest.objects.create(
            product=self.product,
            customer=self.stranger,
            start_date=start,
            end_date=start + timedelta(days=2),
            rental_period=2,
            price=Decimal('20.00'),
            status=RentalRequest.PAID,
        )
        self.service.confirm_return(self.rental_request.pk, self.customer)
        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.RENTED)


class DamageAssessmentTest(ReturnFixturesMixin, TestCase):
    """Test damage assessments on returns"""

    def setUp(self):
        super().setUp()
        self.product_return = self.service.confirm_return(
            self.rental_request.pk, self.customer)

    def test_owner_records_assessment_with_photos(self):
        assessment = self.service.create_damage_assessment(
            self.product_return.pk, self.owner, DamageAssessment.MINOR,
            description='Torn flap', repair_cost='15.50',
            photo_urls=[
                'https://cdn.test/1.jpg',
                {'url': 'https://cdn.test/2.jpg', 'caption': 'Flap'},
            ])

        self.assertEqual(assessment.severity, DamageAssessment.MINOR)
        self.assertEqual(assessment.repair_cost, Decimal('15.50'))
        self.assertEqual(assessment.assessed_by, self.owner)
        captions = sorted(
            photo.caption for photo in assessment.photos.all())
        self.assertEqual(captions, ['', 'Flap'])

    def test_second_assessment_is_rejected(self):
        self.service.create_damage_assessment(
            self.product_return.pk, self.owner, DamageAssessment.NONE)
        with self.assertRaises(AlreadyExists):
            self.service.create_damage_assessment(
                self.product_return.pk, self.owner, DamageAssessment.SEVERE)
        self.assertEqual(DamageAssessment.objects.count(), 1)

    def test_only_owner_can_assess(self):
        with self.assertRaises(Forbidden):
            self.service.create_damage_assessment(
                self.product_return.pk, self.customer, DamageAssessment.MINOR)

    def test_invalid_severity(self):
        with self.assertRaises(ValidationError):
            self.service.create_damage_assessment(
                self.product_return.pk, self.owner, 'catastrophic')

    def test_negative_repair_cost(self):
        with self.assertRaises(ValidationError):
            self.service.create_damage_assessment(
                self.product_return.pk, self.owner, DamageAssessment.MINOR,
                repair_cost='-1')

    def test_unknown_return(self):
        with self.assertRaises(NotFound):
            self.service.create_damage_assessment(
                'not-a-uuid', self.owner, DamageAssessment.MINOR)


class RentalLifecycleTest(TestCase):
    """Test a rental from request through payment to return"""

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        self.customer = User.objects.create_user(
            email='customer@test.com', password='testpass123')
        self.product = Product.objects.create(
            owner=self.owner, title='Camping Tent',
            rental_rate=Decimal('20.00'))
        self.dispatcher = Mock()

    def test_full_lifecycle(self):
        start = timezone.now() + timedelta(days=1)
        rental_request, _ = RentalRequestService(
            dispatcher=self.dispatcher).create_request(
            self.customer, self.product.pk, start, start + timedelta(days=2))
        self.assertEqual(rental_request.price, Decimal('40.00'))

        payments = PaymentService(provider=Mock(), dispatcher=self.dispatcher)
        payment = payments.create_payment(
            self.customer, rental_request.pk, Payment.OFFLINE).payment
        payments.confirm_payment(
            payment.pk, Payment.COMPLETED, actor=self.owner)

        self.product.refresh_from_db()
        self.assertEqual(self.product.status, Product.RENTED)

        ReturnService(dispatcher=self.dispatcher).confirm_return(
            rental_request.pk, self.customer)

        rental_request.refresh_from_db()
        self.product.refresh_from_db()
        invoice = Invoice.objects.get(rental_request=rental_request)
        self.assertEqual(rental_request.status, RentalRequest.COMPLETED)
        self.assertEqual(self.product.status, Product.AVAILABLE)
        self.assertEqual(invoice.invoice_status, Invoice.PAID)


class ReturnAPITest(ReturnFixturesMixin, APITestCase):
    """Test the return endpoints"""

    def url(self, name):
        return reverse(f'returns:{name}', args=[self.rental_request.pk])

    def test_confirm_return(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.url('return-confirm'),
            {'requestType': 'inbound',
             'data': {'condition_notes': 'All good'}},
            format='json', **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(data['return_status'], ProductReturn.COMPLETED)
        self.assertIsNone(data['damage_assessment'])

        response = self.client.post(
            self.url('return-confirm'),
            {'requestType': 'inbound', 'data': {}},
            format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_initiate_return(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            self.url('return-initiate'),
            {'requestType': 'inbound', 'data': {}},
            format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.json()['data']['return_status'], ProductReturn.INITIATED)

    def test_return_detail_before_any_return(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(self.url('return-detail'), **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_damage_assessment_endpoint(self):
        product_return = ReturnService(dispatcher=Mock()).confirm_return(
            self.rental_request.pk, self.customer)
        url = reverse(
            'returns:damage-assessment-create', args=[product_return.pk])
        payload = {'requestType': 'inbound', 'data': {
            'severity': 'moderate',
            'repair_cost': '45.00',
            'photos': [{'url': 'https://cdn.test/dent.jpg'}],
        }}

        self.client.force_authenticate(user=self.owner)
        response = self.client.post(url, payload, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.json()['data']['photos']), 1)

        response = self.client.post(url, payload, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.get(self.url('return-detail'), **API_HEADERS)
        self.assertEqual(
            response.json()['data']['damage_assessment']['severity'],
            'moderate')
