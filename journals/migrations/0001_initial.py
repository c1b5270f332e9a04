# -*- coding: utf-8 -*-

from django.db import models, migrations
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Journal',
            fields=[
                ('id', models.AutoField(verbose_name='ID', serialize=False, auto_created=True, primary_key=True)),
                ('uuid', models.CharField(max_length=36, unique=True)),
                ('url', models.URLField(max_length=512)),
                ('title', models.CharField(max_length=512, null=True, blank=True)),
                ('issn', models.CharField(max_length=9, null=True, blank=True)),
                ('email', models.EmailField(max_length=512, null=True, blank=True)),
                ('publisher_name', models.CharField(max_length=512, null=True, blank=True)),
                ('publisher_url', models.URLField(max_length=512, null=True, blank=True)),
                ('status', models.CharField(default='new', max_length=32, choices=[('new', 'New'), ('healthy', 'Healthy'), ('unhealthy', 'Unhealthy'), ('ping-error', 'Ping error')])),
                ('contacted', models.DateTimeField(default=django.utils.timezone.now)),
                ('notified', models.DateTimeField(null=True, blank=True)),
                ('ojs_version', models.CharField(max_length=32, null=True, blank=True)),
                ('plugin_version', models.CharField(max_length=32, null=True, blank=True)),
                ('terms_accepted', models.BooleanField(default=False)),
                ('created', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='Whitelist',
            fields=[
                ('id', models.AutoField(verbose_name='ID', serialize=False, auto_created=True, primary_key=True)),
                ('uuid', models.CharField(max_length=36, unique=True)),
                ('comment', models.TextField(blank=True, default='')),
                ('created', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Blacklist',
            fields=[
                ('id', models.AutoField(verbose_name='ID', serialize=False, auto_created=True, primary_key=True)),
                ('uuid', models.CharField(max_length=36, unique=True)),
                ('comment', models.TextField(blank=True, default='')),
                ('created', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'abstract': False,
            },
        ),
    ]
