from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="order_history",
            field=models.ManyToManyField(blank=True, related_name="+", to="orders.ordermodel"),
        ),
    ]
