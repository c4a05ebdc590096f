from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("table_number", models.CharField(help_text="Human-readable table number printed on the QR code.", max_length=10, unique=True)),
                ("occupied", models.BooleanField(db_index=True, default=False, help_text="True while a pending or paid order owns this table.")),
                ("locked_at", models.DateTimeField(blank=True, help_text="When the current occupancy lock was taken.", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("table_number",),
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(help_text="Human-readable order reference (ORD-<millis>-<hex>).", max_length=50, unique=True)),
                ("customer_name", models.CharField(max_length=100)),
                ("customer_phone", models.CharField(max_length=20)),
                ("customer_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("external_payment_ref", models.CharField(help_text="Opaque invoice reference used with the payment gateway.", max_length=255, unique=True)),
                ("checkout_url", models.URLField(blank=True, default="", max_length=500)),
                ("payment_method", models.CharField(blank=True, max_length=50, null=True)),
                ("payment_status", models.CharField(choices=[("pending", "Pending"), ("paid", "Paid"), ("expired", "Expired"), ("failed", "Failed"), ("completed", "Completed"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=20)),
                ("total", models.PositiveIntegerField(help_text="Sum of item subtotals, minor currency units.")),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("table", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="orders", to="tableorders.table")),
            ],
            options={
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.PositiveIntegerField(help_text="Catalog food id at time of order.")),
                ("product_name", models.CharField(max_length=100)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.PositiveIntegerField(help_text="Price per unit, minor currency units.")),
                ("subtotal", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="tableorders.order")),
            ],
            options={
                "ordering": ("id",),
            },
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(
                condition=models.Q(("payment_status__in", ["pending", "paid"])),
                fields=["table", "-created_at"],
                name="order_active_per_table_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["table", "-created_at"], name="order_table_recent_idx"),
        ),
    ]
