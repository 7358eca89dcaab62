from decimal import Decimal
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('franchisees', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomerOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reference', models.CharField(blank=True, db_index=True, max_length=64)),
                ('channel', models.CharField(choices=[('IN_APP', 'In app'), ('ON_SITE', 'On site'), ('PHONE', 'Phone')], default='ON_SITE', max_length=16)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('CONFIRMED', 'Confirmed'), ('PREPARING', 'Preparing'), ('READY', 'Ready'), ('FULFILLED', 'Fulfilled'), ('CANCELLED', 'Cancelled')], db_index=True, default='PENDING', max_length=16)),
                ('total_excl_tax', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_incl_tax', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('fulfilled_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('franchisee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='customer_orders', to='franchisees.franchisee')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['franchisee', 'status', 'fulfilled_at'], name='sales_fulfilled_lookup_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('total_excl_tax__gte', 0)), name='customer_order_total_non_negative'),
                    models.CheckConstraint(condition=models.Q(models.Q(('status', 'FULFILLED'), _negated=True), ('fulfilled_at__isnull', False), _connector='OR'), name='customer_order_fulfilled_has_timestamp'),
                ],
            },
        ),
    ]
