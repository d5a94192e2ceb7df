import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('rentals', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProductReturn',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('return_status', models.CharField(choices=[('not_initiated', 'Not initiated'), ('initiated', 'Initiated'), ('in_progress', 'In progress'), ('completed', 'Completed')], default='not_initiated', max_length=20)),
                ('customer_signature', models.TextField(blank=True)),
                ('condition_notes', models.TextField(blank=True)),
                ('return_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('initiated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='initiated_returns', to=settings.AUTH_USER_MODEL)),
                ('rental_request', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='product_return', to='rentals.rentalrequest')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='DamageAssessment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('severity', models.CharField(choices=[('none', 'None'), ('minor', 'Minor'), ('moderate', 'Moderate'), ('severe', 'Severe')], max_length=20)),
                ('description', models.TextField(blank=True)),
                ('repair_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assessed_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='damage_assessments', to=settings.AUTH_USER_MODEL)),
                ('product_return', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='damage_assessment', to='returns.productreturn')),
            ],
        ),
        migrations.CreateModel(
            name='DamagePhoto',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('photo_url', models.URLField(max_length=500)),
                ('caption', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('damage_assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='returns.damageassessment')),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
    ]
