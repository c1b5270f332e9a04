# -*- coding: utf-8 -*-

from django.db import models, migrations
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('journals', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AuContainer',
            fields=[
                ('id', models.AutoField(verbose_name='ID', serialize=False, auto_created=True, primary_key=True)),
                ('open', models.BooleanField(default=True)),
                ('created', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='Deposit',
            fields=[
                ('id', models.AutoField(verbose_name='ID', serialize=False, auto_created=True, primary_key=True)),
                ('deposit_uuid', models.CharField(max_length=36, unique=True)),
                ('journal_version', models.CharField(default='2.4.8', max_length=32)),
                ('received', models.DateTimeField(auto_now_add=True)),
                ('modified', models.DateTimeField(auto_now=True)),
                ('action', models.CharField(default='add', max_length=32)),
                ('volume', models.CharField(blank=True, default='', max_length=32)),
                ('issue', models.CharField(blank=True, default='', max_length=32)),
                ('pub_date', models.DateField(null=True, blank=True)),
                ('file_type', models.CharField(blank=True, default='', max_length=64)),
                ('url', models.URLField(max_length=2048)),
                ('size', models.BigIntegerField(default=0)),
                ('checksum_type', models.CharField(max_length=24)),
                ('checksum_value', models.CharField(max_length=128)),
                ('license', models.JSONField(blank=True, default=dict)),
                ('state', models.CharField(db_index=True, default='depositedByJournal', max_length=32, choices=[('depositedByJournal', 'depositedByJournal'), ('harvested', 'harvested'), ('payload-validated', 'payload-validated'), ('bag-validated', 'bag-validated'), ('xml-validated', 'xml-validated'), ('scanned', 'scanned'), ('reserialized', 'reserialized'), ('deposited', 'deposited'), ('agreement', 'agreement'), ('cleaned', 'cleaned'), ('failed', 'failed')])),
                ('failed_state', models.CharField(max_length=32, null=True, blank=True)),
                ('error_log', models.JSONField(blank=True, default=list)),
                ('processing_log', models.TextField(blank=True, default='')),
                ('harvest_attempts', models.IntegerField(default=0)),
                ('retry_count', models.IntegerField(default=0)),
                ('package_size', models.BigIntegerField(null=True, blank=True)),
                ('package_checksum_type', models.CharField(max_length=24, null=True, blank=True)),
                ('package_checksum_value', models.CharField(max_length=128, null=True, blank=True)),
                ('pln_state', models.CharField(max_length=32, null=True, blank=True)),
                ('deposit_date', models.DateTimeField(null=True, blank=True)),
                ('deposit_receipt', models.URLField(max_length=2048, null=True, blank=True)),
                ('au_container', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deposits', to='deposit.aucontainer')),
                ('journal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deposits', to='journals.journal')),
            ],
        ),
        migrations.AddIndex(
            model_name='deposit',
            index=models.Index(fields=['journal', 'state'], name='deposit_journal_state_idx'),
        ),
    ]
