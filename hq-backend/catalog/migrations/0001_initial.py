from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('sku', models.CharField(max_length=64, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('unit', models.CharField(blank=True, default='', help_text='Sales unit, e.g. kg, pcs, l', max_length=16)),
                ('is_core_item', models.BooleanField(db_index=True, default=True)),
                ('default_tax_rate_pct', models.DecimalField(decimal_places=2, default=Decimal('5.50'), help_text='VAT rate in percent, e.g. 5.50', max_digits=5)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'ordering': ['sku'],
                'constraints': [models.CheckConstraint(condition=models.Q(('default_tax_rate_pct__gte', 0)), name='product_tax_rate_non_negative')],
            },
        ),
    ]
