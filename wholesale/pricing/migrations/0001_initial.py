# Generated manually
import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BulkPricing',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('min_quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bulk_pricing', to='catalog.product')),
            ],
            options={
                'db_table': 'bulk_pricing',
                'ordering': ['product', 'min_quantity'],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'min_quantity'), name='unique_product_min_quantity'),
                    models.CheckConstraint(condition=models.Q(('min_quantity__gte', 1)), name='bulk_pricing_min_quantity_positive'),
                ],
            },
        ),
    ]
