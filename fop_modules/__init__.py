"""
FOP domain modules.

* ``applications`` -- permit applications, documents, payments, waivers, fees
* ``revenue``      -- per-flight invoices, fee schedule, operator balances
* ``permits``      -- issued permits and the debt-gated issuance gate
* ``notifications``-- sender protocol and post-commit event handlers
"""
