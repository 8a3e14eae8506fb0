# Generated migration for vouchers, referrals, loyalty grants and wallets

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(help_text="Code typed at checkout", max_length=50, unique=True)),
                ("name", models.CharField(blank=True, max_length=200)),
                ("description", models.TextField(blank=True)),
                ("discount_type", models.CharField(choices=[("percentage", "Percentage"), ("fixed", "Fixed Amount")], default="fixed", max_length=20)),
                ("discount_value", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("min_order_amount", models.DecimalField(blank=True, decimal_places=2, help_text="Minimum order total required, empty for none", max_digits=12, null=True)),
                ("max_uses", models.PositiveIntegerField(blank=True, help_text="Empty means unlimited", null=True)),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("valid_from", models.DateTimeField(blank=True, null=True)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("source", models.CharField(choices=[("manual", "Manual"), ("referral_signup", "Referral Signup Discount"), ("referral_reward", "Referrer Reward"), ("free_delivery_reward", "Free Delivery Reward")], default="manual", max_length=30)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("source_order", models.ForeignKey(blank=True, help_text="Order whose reward issued this voucher", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reward_vouchers", to="orders.order")),
                ("user", models.ForeignKey(blank=True, help_text="Owner of a user-specific voucher, empty for public codes", null=True, on_delete=django.db.models.deletion.CASCADE, related_name="vouchers", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Voucher",
                "verbose_name_plural": "Vouchers",
                "db_table": "promotion_vouchers",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["is_active", "valid_to"], name="promotion_v_is_acti_1a2b3c_idx"),
                    models.Index(fields=["user", "is_active"], name="promotion_v_user_id_4d5e6f_idx"),
                    models.Index(fields=["source_order"], name="promotion_v_source__7a8b9c_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("max_uses__isnull", True), ("used_count__lte", models.F("max_uses")), _connector="OR"), name="voucher_used_count_within_max_uses"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherUsage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="voucher_usages", to="orders.order")),
                ("user", models.ForeignKey(blank=True, help_text="Empty for guest checkouts", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="voucher_usages", to=settings.AUTH_USER_MODEL)),
                ("voucher", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="usages", to="promotions.voucher")),
            ],
            options={
                "verbose_name": "Voucher Usage",
                "verbose_name_plural": "Voucher Usages",
                "db_table": "promotion_voucher_usages",
                "ordering": ("-created_at",),
                "constraints": [
                    models.UniqueConstraint(fields=("voucher", "user"), name="unique_voucher_usage_per_user"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Referral",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("referrer_email", models.EmailField(max_length=254)),
                ("referred_user_email", models.EmailField(max_length=254)),
                ("status", models.CharField(choices=[("applied", "Applied (discount granted, awaiting spend)"), ("qualified", "Qualified (referrer rewarded)"), ("completed", "Completed (referral discount consumed)")], default="applied", max_length=20)),
                ("referred_purchase_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_given", models.BooleanField(default=False, help_text="Referred user's signup discount has been consumed in an order")),
                ("referrer_discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("qualified_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("discount_voucher", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="signup_referrals", to="promotions.voucher")),
                ("referred_user", models.OneToOneField(help_text="A user can be referred only once", on_delete=django.db.models.deletion.CASCADE, related_name="referral", to=settings.AUTH_USER_MODEL)),
                ("referrer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="referrals_made", to=settings.AUTH_USER_MODEL)),
                ("referrer_voucher", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reward_referrals", to="promotions.voucher")),
            ],
            options={
                "verbose_name": "Referral",
                "verbose_name_plural": "Referrals",
                "db_table": "promotion_referrals",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["referrer", "status"], name="promotion_r_referre_2c3d4e_idx"),
                    models.Index(fields=["status", "-created_at"], name="promotion_r_status_5f6a7b_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReferralContribution",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="referral_contributions", to="orders.order")),
                ("referral", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="contributions", to="promotions.referral")),
            ],
            options={
                "verbose_name": "Referral Contribution",
                "verbose_name_plural": "Referral Contributions",
                "db_table": "promotion_referral_contributions",
                "constraints": [
                    models.UniqueConstraint(fields=("referral", "order"), name="unique_referral_contribution_per_order"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyGrant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tier_label", models.CharField(max_length=50)),
                ("points", models.PositiveIntegerField(default=0)),
                ("spin_credits", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("retracted_at", models.DateTimeField(blank=True, null=True)),
                ("order", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="loyalty_grant", to="orders.order")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="loyalty_grants", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Loyalty Grant",
                "verbose_name_plural": "Loyalty Grants",
                "db_table": "promotion_loyalty_grants",
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="promotion_l_user_id_8c9d0e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="wallet", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Wallet",
                "verbose_name_plural": "Wallets",
                "db_table": "promotion_wallets",
            },
        ),
        migrations.CreateModel(
            name="WalletTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("reference", models.CharField(max_length=100, unique=True)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="wallet_transactions", to="orders.order")),
                ("wallet", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="promotions.wallet")),
            ],
            options={
                "verbose_name": "Wallet Transaction",
                "verbose_name_plural": "Wallet Transactions",
                "db_table": "promotion_wallet_transactions",
                "ordering": ("-created_at",),
            },
        ),
    ]
