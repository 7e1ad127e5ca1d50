from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Practitioner",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(blank=True, default="", max_length=120)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "employment_type",
                    models.CharField(
                        choices=[("full_time", "Full time"), ("part_time", "Part time"), ("locum", "Locum")],
                        default="full_time",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("contract_end_date", models.DateField(blank=True, null=True)),
                ("mon", models.BooleanField(default=False)),
                ("tue", models.BooleanField(default=False)),
                ("wed", models.BooleanField(default=False)),
                ("thu", models.BooleanField(default=False)),
                ("fri", models.BooleanField(default=False)),
                ("sat", models.BooleanField(default=False)),
                ("sun", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code", "id"],
            },
        ),
    ]
