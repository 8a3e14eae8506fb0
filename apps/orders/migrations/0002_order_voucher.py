# Generated migration: order -> voucher link, added after the promotions tables exist

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('orders', '0001_initial'),
        ('promotions', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='order',
            name='voucher',
            field=models.ForeignKey(blank=True, help_text='Cleared when the voucher could not be redeemed', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='promotions.voucher'),
        ),
    ]
