import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AccountLink',
            fields=[
                (
                    'id',
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name='ID',
                    ),
                ),
                (
                    'resource_owner',
                    models.CharField(
                        help_text=(
                            'name of the resource owner the remote user'
                            ' belongs to'
                        ),
                        max_length=255,
                    ),
                ),
                (
                    'identifier',
                    models.CharField(
                        help_text=(
                            'identifier of the user in the resource owner'
                        ),
                        max_length=512,
                    ),
                ),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'last_used',
                    models.DateTimeField(
                        auto_now=True,
                        help_text='last time this link has been used',
                    ),
                ),
                ('claims', models.JSONField(default=dict)),
                (
                    'user',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='account_links',
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(
                        fields=('resource_owner', 'identifier'),
                        name='connect_accountlink_unique_owner_identifier',
                    )
                ],
            },
        ),
    ]
