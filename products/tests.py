from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Product

User = get_user_model()

API_HEADERS = {'HTTP_X_API_KEY': 'test-api-key'}


class ProductModelTest(TestCase):

    def test_new_product_is_available(self):
        owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        product = Product.objects.create(
            owner=owner, title='Kayak', rental_rate=Decimal('25.00'))
        self.assertTrue(product.is_available)
        self.assertEqual(product.currency, 'usd')
        self.assertEqual(str(product), 'Kayak')


class ProductAPITest(APITestCase):
    """Test product listing endpoints"""

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@test.com', password='testpass123')
        self.other = User.objects.create_user(
            email='other@test.com', password='testpass123')
        self.product = Product.objects.create(
            owner=self.owner, title='Kayak', category='Water',
            rental_rate=Decimal('25.00'))
        Product.objects.create(
            owner=self.other, title='Drill', category='Tools',
            rental_rate=Decimal('8.00'), status=Product.RENTED)
        self.list_url = reverse('products:product-list')

    def test_create_product(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            self.list_url,
            {'requestType': 'inbound', 'data': {
                'title': 'Tent', 'rental_rate': '12.50', 'currency': 'EUR'}},
            format='json', **API_HEADERS)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()['data']
        self.assertEqual(data['owner']['id'], str(self.owner.id))
        self.assertEqual(data['currency'], 'eur')
        self.assertEqual(data['status'], Product.AVAILABLE)

    def test_create_rejects_non_positive_rate(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            self.list_url,
            {'requestType': 'inbound', 'data': {
                'title': 'Tent', 'rental_rate': '0'}},
            format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rental_rate', response.json()['data'])

    def test_list_filters(self):
        self.client.force_authenticate(user=self.other)
        response = self.client.get(
            self.list_url, {'status': Product.AVAILABLE}, **API_HEADERS)
        self.assertEqual(response.json()['data']['count'], 1)

        response = self.client.get(
            self.list_url, {'category': 'tools'}, **API_HEADERS)
        self.assertEqual(response.json()['data']['count'], 1)

        response = self.client.get(
            self.list_url, {'owner': str(self.owner.id)}, **API_HEADERS)
        results = response.json()['data']['results']
        self.assertEqual([item['title'] for item in results], ['Kayak'])

    def test_invalid_owner_filter(self):
        self.client.force_authenticate(user=self.other)
        response = self.client.get(
            self.list_url, {'owner': 'nope'}, **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_owner_can_update(self):
        url = reverse('products:product-detail', args=[self.product.id])
        payload = {'requestType': 'inbound', 'data': {'title': 'Canoe'}}

        self.client.force_authenticate(user=self.other)
        response = self.client.patch(
            url, payload, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(
            url, payload, format='json', **API_HEADERS)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.title, 'Canoe')
