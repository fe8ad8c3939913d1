# carechain

A set of in-memory healthcare registries. Each registry is a plain Python
object that keeps its own state and raises an exception when an operation
is not allowed.

| Module | Entry class | Purpose |
| --- | --- | --- |
| `carechain.immunization` | `ImmunizationRegistry` | Vaccine records, adverse events, vaccine series and due checks |
| `carechain.insurer` | `InsurerRegistry` | Insurance companies and their claims reviewers |
| `carechain.lab` | `LabManagement` | Lab orders, lab assignment, result submission with a QC check |
| `carechain.claims` | `MedicalClaims` | Claim submission, adjudication, appeals (levels 1–3) and payments |
| `carechain.patient_registry` | `MedicalRegistry` | Patients, doctors, institutions, record access grants |
| `carechain.pacs` | `PacsArchive` | Imaging studies, series, reports, access grants, view audit, search |
| `carechain.vitals` | `PatientVitals` | Vital sign history, devices, alerts, trends and statistics |
| `carechain.prescription` | `PrescriptionManager` | Prescriptions, drug interactions, allergies and contraindications |

Patients, providers and other parties are identified by any hashable value
(a string such as `"patient-1"` works). Hashes such as a claim's details
hash or a study's storage location hash must be exactly 32 bytes; other
lengths raise `ValueError`.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Example

```python
from carechain.claims import ClaimStatus, MedicalClaims, ServiceLine

claims = MedicalClaims()
claim_id = claims.submit_claim(
    "provider-1", "patient-1", 12345, 1690000000,
    [ServiceLine("99213", quantity=1, charge_amount=15000)],
    [], bytes(32), 15000,
)
claims.adjudicate_claim(claim_id, "insurer-admin", [1], [], 10000, 2000)
claims.process_payment(claim_id, "insurer-admin", 8000, 1690100000, "REF_123")
claims.apply_patient_payment(claim_id, "patient-1", 2000, 1690200000)
assert claims.get_claim(claim_id).status is ClaimStatus.CLOSED
```

## Errors

Every module defines its own exception class: `ImmunizationError`,
`InsurerRegistryError`, `LabError`, `ClaimsError`, `RegistryError`,
`PacsError`, `VitalsError` and `PrescriptionError`. Modules with numbered
errors also provide an `ErrorCode` enum, and their exception carries it as
`code`.

## Time and events

`MedicalRegistry`, `PacsArchive` and `PrescriptionManager` accept a
`clock` callable returning the current time in seconds; it defaults to the
system clock. It stamps medical records, studies, reports, grants and
overrides, and decides access-grant and prescription expiry.

`InsurerRegistry`, `LabManagement`, `MedicalRegistry` and `PacsArchive`
append a `(topics, data)` tuple to their `events` list for each
notification they publish.

## What this package does not do

- State lives only in memory; nothing is saved to disk or a database.
- There is no authentication. Parameters naming a requester, reporter or
  administrator are taken as given; only the ownership checks each
  operation describes (for example, only a claim's own provider may
  appeal it) are enforced.
- There is no command-line tool or server; the registries are used from
  Python code.