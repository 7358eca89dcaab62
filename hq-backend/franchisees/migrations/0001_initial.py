from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import franchisees.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Franchisee',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('code', models.SlugField(unique=True)),
                ('name', models.CharField(max_length=200)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='FranchiseUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('role', models.CharField(choices=[('hq_admin', 'HQ Admin'), ('hq_procurement', 'HQ Procurement'), ('hq_finance', 'HQ Finance'), ('franchisee_owner', 'Franchisee Owner'), ('franchisee_staff', 'Franchisee Staff')], default='franchisee_staff', max_length=32)),
                ('is_active', models.BooleanField(default=True)),
                ('franchisee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='users', to='franchisees.franchisee')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='franchise_membership', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='FranchiseAgreement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True, help_text='Exclusive; empty while the agreement is open', null=True)),
                ('entry_fee_amount', models.DecimalField(decimal_places=2, default=franchisees.models.default_entry_fee, max_digits=12)),
                ('revenue_share_pct', models.DecimalField(decimal_places=4, default=franchisees.models.default_revenue_share_pct, help_text='Fraction of gross sales owed per period, e.g. 0.0400 for 4%', max_digits=6)),
                ('timezone', models.CharField(default=franchisees.models.default_reference_time_zone, help_text='IANA time zone used for billing period boundaries', max_length=64)),
                ('notes', models.TextField(blank=True)),
                ('franchisee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='agreements', to='franchisees.franchisee')),
            ],
            options={
                'ordering': ['franchisee', '-start_date'],
                'constraints': [
                    models.UniqueConstraint(fields=('franchisee', 'start_date'), name='unique_agreement_start_per_franchisee'),
                    models.CheckConstraint(condition=models.Q(('end_date__isnull', True), ('end_date__gte', models.F('start_date')), _connector='OR'), name='agreement_end_not_before_start'),
                ],
            },
        ),
    ]
