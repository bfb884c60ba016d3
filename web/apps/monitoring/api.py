from django.db import connection
from django.http import JsonResponse

from apps.orders.http_adapters import gateway_circuit_state


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except Exception:
        db_ok = False

    circuit = gateway_circuit_state()
    # An open gateway circuit degrades checkout but the service still answers reads.
    code = 200 if db_ok else 503
    return JsonResponse(
        {
            "ok": db_ok,
            "components": {
                "db": {"ok": db_ok},
                "payment_gateway": {"ok": circuit != "OPEN", "circuit": circuit},
            },
        },
        status=code,
    )
