from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('franchisees', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='RoyaltyReport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('period', models.CharField(db_index=True, help_text='YYYY-MM', max_length=7)),
                ('period_start', models.DateTimeField()),
                ('period_end', models.DateTimeField(help_text='Exclusive')),
                ('timezone', models.CharField(max_length=64)),
                ('gross_sales', models.DecimalField(decimal_places=2, max_digits=14)),
                ('share_pct', models.DecimalField(decimal_places=4, help_text='Fraction, e.g. 0.0400', max_digits=6)),
                ('amount_due', models.DecimalField(decimal_places=2, max_digits=14)),
                ('order_count', models.PositiveIntegerField(default=0)),
                ('generated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('generated_pdf_url', models.URLField(blank=True, max_length=500)),
                ('agreement', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='royalty_reports', to='franchisees.franchiseagreement')),
                ('franchisee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='royalty_reports', to='franchisees.franchisee')),
                ('generated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-period', 'franchisee'],
                'constraints': [models.UniqueConstraint(fields=('franchisee', 'period'), name='unique_royalty_report_per_period')],
            },
        ),
    ]
