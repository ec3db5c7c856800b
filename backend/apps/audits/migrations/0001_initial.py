# Generated manually for the audits table

import apps.audits.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditRecord",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "id",
                    models.CharField(
                        default=apps.audits.models.generate_audit_id,
                        editable=False,
                        max_length=12,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("contract_code", models.TextField()),
                (
                    "contract_address",
                    models.CharField(blank=True, max_length=64, null=True),
                ),
                ("score", models.PositiveSmallIntegerField()),
                ("findings", models.JSONField(default=list)),
                ("summary", models.TextField(blank=True, default="")),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("paste", "Pasted Code"),
                            ("etherscan", "Etherscan Address Lookup"),
                        ],
                        default="paste",
                        max_length=20,
                    ),
                ),
            ],
            options={
                "db_table": "audits",
                "ordering": ["-created_at"],
            },
        ),
    ]
