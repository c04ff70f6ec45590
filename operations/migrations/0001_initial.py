from decimal import Decimal

from django.conf import settings
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                (
                    'is_superuser',
                    models.BooleanField(
                        default=False,
                        help_text='Designates that this user has all permissions without explicitly assigning them.',
                        verbose_name='superuser status',
                    ),
                ),
                (
                    'username',
                    models.CharField(
                        error_messages={'unique': 'A user with that username already exists.'},
                        help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.',
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name='username',
                    ),
                ),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                (
                    'is_staff',
                    models.BooleanField(
                        default=False,
                        help_text='Designates whether the user can log into this admin site.',
                        verbose_name='staff status',
                    ),
                ),
                (
                    'is_active',
                    models.BooleanField(
                        default=True,
                        help_text=(
                            'Designates whether this user should be treated as active. '
                            'Unselect this instead of deleting accounts.'
                        ),
                        verbose_name='active',
                    ),
                ),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('phone', models.CharField(blank=True, max_length=50)),
                (
                    'role',
                    models.CharField(
                        choices=[
                            ('admin', 'Admin'),
                            ('super_admin', 'Super Admin'),
                            ('engineer', 'Engineer'),
                            ('finance', 'Finance'),
                        ],
                        default='engineer',
                        max_length=32,
                    ),
                ),
                ('signature_image', models.URLField(blank=True)),
                (
                    'groups',
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            'The groups this user belongs to. A user will get all permissions '
                            'granted to each of their groups.'
                        ),
                        related_name='user_set',
                        related_query_name='user',
                        to='auth.group',
                        verbose_name='groups',
                    ),
                ),
                (
                    'user_permissions',
                    models.ManyToManyField(
                        blank=True,
                        help_text='Specific permissions for this user.',
                        related_name='user_set',
                        related_query_name='user',
                        to='auth.permission',
                        verbose_name='user permissions',
                    ),
                ),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Client',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client_name', models.CharField(max_length=255)),
                ('client_address', models.TextField()),
                (
                    'pincode',
                    models.CharField(
                        max_length=6,
                        validators=[django.core.validators.RegexValidator('^[0-9]{6}$', 'Pincode must be 6 digits')],
                    ),
                ),
                (
                    'mobile_number',
                    models.CharField(
                        max_length=50,
                        validators=[
                            django.core.validators.RegexValidator('^\\+?[\\d\\s-]{6,}$', 'Enter a valid phone number.')
                        ],
                    ),
                ),
                (
                    'telephone_number',
                    models.CharField(
                        blank=True,
                        max_length=50,
                        validators=[
                            django.core.validators.RegexValidator('^\\+?[\\d\\s-]{6,}$', 'Enter a valid phone number.')
                        ],
                    ),
                ),
                ('trn_number', models.CharField(max_length=50, unique=True)),
                ('email', models.EmailField(blank=True, max_length=254)),
                (
                    'created_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='clients_created',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['client_name'], name='client_name_idx'),
                    models.Index(fields=['pincode'], name='client_pincode_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('project_name', models.CharField(max_length=100)),
                ('project_description', models.TextField(blank=True, max_length=500)),
                ('site_address', models.CharField(max_length=255)),
                ('site_location', models.CharField(max_length=255)),
                (
                    'status',
                    models.CharField(
                        choices=[
                            ('draft', 'Draft'),
                            ('estimation_prepared', 'Estimation Prepared'),
                            ('quotation_sent', 'Quotation Sent'),
                            ('quotation_approved', 'Quotation Approved'),
                            ('quotation_rejected', 'Quotation Rejected'),
                            ('lpo_received', 'LPO Received'),
                            ('contract_signed', 'Contract Signed'),
                            ('work_started', 'Work Started'),
                            ('in_progress', 'In Progress'),
                            ('work_completed', 'Work Completed'),
                            ('quality_check', 'Quality Check'),
                            ('client_handover', 'Client Handover'),
                            ('invoice_sent', 'Invoice Sent'),
                            ('final_invoice_sent', 'Final Invoice Sent'),
                            ('payment_received', 'Payment Received'),
                            ('project_closed', 'Project Closed'),
                            ('on_hold', 'On Hold'),
                            ('cancelled', 'Cancelled'),
                        ],
                        default='draft',
                        max_length=32,
                    ),
                ),
                (
                    'progress',
                    models.PositiveSmallIntegerField(
                        default=0, validators=[django.core.validators.MaxValueValidator(100)]
                    ),
                ),
                ('project_number', models.CharField(max_length=50, unique=True)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='projects', to='operations.client'
                    ),
                ),
                (
                    'created_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='projects_created',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    'updated_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='projects_updated',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    'assigned_to',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='assigned_projects',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['project_name'], name='project_name_idx'),
                    models.Index(fields=['status'], name='project_status_idx'),
                    models.Index(fields=['progress'], name='project_progress_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Estimation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('estimation_number', models.CharField(max_length=50, unique=True)),
                ('work_start_date', models.DateField()),
                ('work_end_date', models.DateField()),
                ('valid_until', models.DateField()),
                ('payment_due_by', models.PositiveIntegerField(help_text='Payment due, in days.')),
                ('subject', models.CharField(blank=True, max_length=255)),
                ('estimated_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                (
                    'quotation_amount',
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                (
                    'commission_amount',
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('profit', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('is_checked', models.BooleanField(default=False)),
                ('is_approved', models.BooleanField(default=False)),
                ('approval_comment', models.TextField(blank=True)),
                (
                    'project',
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name='estimation', to='operations.project'
                    ),
                ),
                (
                    'prepared_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='estimations_prepared',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    'checked_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='estimations_checked',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    'approved_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='estimations_approved',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_approved'], name='estimation_approved_idx'),
                    models.Index(fields=['is_checked'], name='estimation_checked_idx'),
                    models.Index(fields=['work_start_date'], name='estimation_start_idx'),
                    models.Index(fields=['work_end_date'], name='estimation_end_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EstimationItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                (
                    'section',
                    models.CharField(
                        choices=[('material', 'Material'), ('term', 'Terms & Miscellaneous')], max_length=16
                    ),
                ),
                ('description', models.CharField(max_length=500)),
                ('uom', models.CharField(max_length=32)),
                (
                    'quantity',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                (
                    'unit_price',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('total', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                (
                    'estimation',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='items', to='operations.estimation'
                    ),
                ),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='EstimationLabour',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('designation', models.CharField(max_length=255)),
                (
                    'days',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=8,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                (
                    'price',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('total', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                (
                    'estimation',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='labour', to='operations.estimation'
                    ),
                ),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Quotation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('quotation_number', models.CharField(max_length=50, unique=True)),
                ('date', models.DateField()),
                ('valid_until', models.DateField()),
                ('scope_of_work', models.JSONField(blank=True, default=list)),
                ('terms_and_conditions', models.JSONField(blank=True, default=list)),
                (
                    'vat_percentage',
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal('5'),
                        max_digits=5,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('subtotal', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('vat_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('net_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('is_approved', models.BooleanField(blank=True, null=True)),
                ('approval_comment', models.TextField(blank=True)),
                (
                    'project',
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name='quotation', to='operations.project'
                    ),
                ),
                (
                    'estimation',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='quotations',
                        to='operations.estimation',
                    ),
                ),
                (
                    'prepared_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='quotations_prepared',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    'approved_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='quotations_approved',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='QuotationItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(default=0)),
                ('description', models.CharField(max_length=500)),
                ('uom', models.CharField(default='NOS', max_length=32)),
                (
                    'quantity',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                (
                    'unit_price',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('total_price', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('image_url', models.CharField(blank=True, max_length=500)),
                ('image_key', models.CharField(blank=True, max_length=500)),
                (
                    'quotation',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='items', to='operations.quotation'
                    ),
                ),
            ],
            options={
                'ordering': ['position', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Lpo',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lpo_number', models.CharField(max_length=100, unique=True)),
                ('lpo_date', models.DateField()),
                ('supplier', models.CharField(blank=True, max_length=255)),
                (
                    'amount',
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
                    ),
                ),
                ('document_url', models.CharField(blank=True, max_length=500)),
                ('document_key', models.CharField(blank=True, max_length=500)),
                (
                    'project',
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name='lpo', to='operations.project'
                    ),
                ),
                (
                    'created_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='lpos_created',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'verbose_name': 'LPO',
                'verbose_name_plural': 'LPOs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WorkCompletion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'project',
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='work_completion',
                        to='operations.project',
                    ),
                ),
                (
                    'created_by',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='work_completions',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['created_by'], name='completion_creator_idx')],
            },
        ),
        migrations.CreateModel(
            name='WorkCompletionImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('image_url', models.CharField(max_length=500)),
                ('storage_key', models.CharField(max_length=500)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                (
                    'work_completion',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='images',
                        to='operations.workcompletion',
                    ),
                ),
            ],
            options={
                'ordering': ['uploaded_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Comment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('content', models.TextField()),
                (
                    'action_type',
                    models.CharField(
                        choices=[
                            ('approval', 'Approval'),
                            ('rejection', 'Rejection'),
                            ('check', 'Check'),
                            ('progress_update', 'Progress Update'),
                            ('general', 'General'),
                        ],
                        default='general',
                        max_length=32,
                    ),
                ),
                ('progress', models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    'project',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='operations.project'
                    ),
                ),
                (
                    'user',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='comments',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['project', 'action_type'], name='comment_project_action_idx')],
            },
        ),
    ]
