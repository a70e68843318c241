"""
Initial migration for Woodledger models.
"""

from decimal import Decimal
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


UNIT_CHOICES = [
    ('pieces', 'Pieces'),
    ('cubic_feet', 'Cubic feet'),
    ('cubic_meter', 'Cubic meter'),
    ('bundle', 'Bundle'),
    ('ton', 'Ton'),
]


class Migration(migrations.Migration):
    """Create Woodledger models: StockItem, Distribution, Movement."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('wood_type', models.CharField(db_index=True, max_length=100, validators=[django.core.validators.MinLengthValidator(2)], verbose_name='Wood type')),
                ('species', models.CharField(blank=True, default='', max_length=100, verbose_name='Species')),
                ('size', models.CharField(max_length=50, verbose_name='Size')),
                ('unit', models.CharField(choices=UNIT_CHOICES, default='pieces', max_length=20, verbose_name='Unit')),
                ('quality', models.CharField(choices=[('Premium', 'Premium'), ('Standard', 'Standard'), ('Basic', 'Basic'), ('Damaged', 'Damaged')], db_index=True, default='Standard', max_length=20, verbose_name='Quality')),
                ('source', models.CharField(blank=True, default='', help_text='Where the wood came from', max_length=200, verbose_name='Source')),
                ('location', models.CharField(blank=True, default='', help_text='Storage location', max_length=200, verbose_name='Location')),
                ('available', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Available')),
                ('allocated', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Allocated')),
                ('distributed', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Distributed')),
                ('price_per_unit', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Price per unit')),
                ('arrival_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Arrival date')),
                ('expiry_date', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Expiry date')),
                ('minimum_threshold', models.DecimalField(decimal_places=2, default=Decimal('10'), help_text='At or below this quantity the item is low on stock', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Minimum threshold')),
                ('reserved', models.BooleanField(default=False, help_text='Manual override: shows the item as Reserved until cleared', verbose_name='Reserved')),
                ('status', models.CharField(choices=[('Available', 'Available'), ('LowStock', 'Low stock'), ('OutOfStock', 'Out of stock'), ('Reserved', 'Reserved'), ('Expired', 'Expired')], db_index=True, default='OutOfStock', editable=False, max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('added_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Added by')),
            ],
            options={
                'verbose_name': 'Stock item',
                'verbose_name_plural': 'Stock items',
                'ordering': ['arrival_date'],
            },
        ),
        migrations.CreateModel(
            name='Distribution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('member_id', models.PositiveIntegerField(db_index=True, verbose_name='Member')),
                ('wood_type', models.CharField(max_length=100, verbose_name='Wood type')),
                ('wood_size', models.CharField(max_length=50, verbose_name='Wood size')),
                ('unit', models.CharField(choices=UNIT_CHOICES, default='pieces', max_length=20, verbose_name='Unit')),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Quantity')),
                ('price_per_unit', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Price per unit')),
                ('total_price', models.DecimalField(blank=True, decimal_places=2, editable=False, max_digits=12, null=True, verbose_name='Total price')),
                ('purpose', models.CharField(choices=[('Personal Use', 'Personal use'), ('Construction', 'Construction'), ('Fuel', 'Fuel'), ('Sale', 'Sale'), ('Community Project', 'Community project'), ('Other', 'Other')], db_index=True, default='Personal Use', max_length=30, verbose_name='Purpose')),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Delivered', 'Delivered'), ('Cancelled', 'Cancelled'), ('Returned', 'Returned')], db_index=True, default='Pending', max_length=20, verbose_name='Status')),
                ('payment_status', models.CharField(choices=[('Paid', 'Paid'), ('Unpaid', 'Unpaid'), ('Partial', 'Partial'), ('Not Required', 'Not required')], db_index=True, default='Not Required', max_length=20, verbose_name='Payment status')),
                ('payment_method', models.CharField(blank=True, choices=[('Cash', 'Cash'), ('Bank Transfer', 'Bank transfer'), ('Cheque', 'Cheque'), ('Work Exchange', 'Work exchange'), ('Free', 'Free')], max_length=20, null=True, verbose_name='Payment method')),
                ('receipt_number', models.CharField(blank=True, max_length=40, null=True, unique=True, verbose_name='Receipt number')),
                ('requested_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Requested at')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Approved at')),
                ('delivered_at', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Delivered at')),
                ('returned_at', models.DateTimeField(blank=True, null=True, verbose_name='Returned at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled at')),
                ('request_notes', models.TextField(blank=True, default='', verbose_name='Request notes')),
                ('approval_notes', models.TextField(blank=True, default='', verbose_name='Approval notes')),
                ('distribution_notes', models.TextField(blank=True, default='', verbose_name='Distribution notes')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='distributions', to='woodledger.stockitem', verbose_name='Stock item')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Requested by')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Approved by')),
                ('delivered_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Delivered by')),
            ],
            options={
                'verbose_name': 'Distribution',
                'verbose_name_plural': 'Distributions',
                'ordering': ['-requested_at'],
                'permissions': [
                    ('approve_distribution', 'Can approve distributions'),
                    ('deliver_distribution', 'Can deliver distributions'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('add', 'Add'), ('allocate', 'Allocate'), ('distribute', 'Distribute'), ('return', 'Return'), ('release', 'Release')], max_length=20, verbose_name='Kind')),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Quantity')),
                ('available_after', models.DecimalField(decimal_places=2, max_digits=10)),
                ('allocated_after', models.DecimalField(decimal_places=2, max_digits=10)),
                ('distributed_after', models.DecimalField(decimal_places=2, max_digits=10)),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='woodledger.stockitem', verbose_name='Stock item')),
                ('distribution', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='woodledger.distribution', verbose_name='Distribution')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['timestamp', 'pk'],
            },
        ),
        # Indexes
        migrations.AddIndex(
            model_name='stockitem',
            index=models.Index(fields=['wood_type', 'size'], name='wl_item_type_size_idx'),
        ),
        migrations.AddIndex(
            model_name='stockitem',
            index=models.Index(fields=['available'], name='wl_item_available_idx'),
        ),
        migrations.AddIndex(
            model_name='distribution',
            index=models.Index(fields=['member_id', 'requested_at'], name='wl_dist_member_idx'),
        ),
        migrations.AddIndex(
            model_name='distribution',
            index=models.Index(fields=['status', 'delivered_at'], name='wl_dist_status_deliv_idx'),
        ),
        migrations.AddIndex(
            model_name='movement',
            index=models.Index(fields=['item', 'timestamp'], name='wl_move_item_ts_idx'),
        ),
        # Pools never go negative
        migrations.AddConstraint(
            model_name='stockitem',
            constraint=models.CheckConstraint(condition=models.Q(available__gte=0), name='stock_item_available_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='stockitem',
            constraint=models.CheckConstraint(condition=models.Q(allocated__gte=0), name='stock_item_allocated_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='stockitem',
            constraint=models.CheckConstraint(condition=models.Q(distributed__gte=0), name='stock_item_distributed_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='distribution',
            constraint=models.CheckConstraint(condition=models.Q(quantity__gt=0), name='distribution_quantity_positive'),
        ),
    ]
