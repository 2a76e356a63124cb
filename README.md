# ticketsys

A small service for sports betting slips. It accepts tickets over HTTP and
stores them with their selections in an SQLite database. It also works out
the combinations and payouts of each ticket.

Two kinds of ticket are handled.

**Normal (accumulator) tickets.** All selections form one combination. The
combined odd is the product of the selection odds. The potential payout and
the maximum payout are that odd times the total stake. The minimum payout is
recorded as 0.

**System tickets.** The ticket type is `"system"` and `system_combination` is
set, for example `"2/4,3/4"`. Only the number before each `/` is used. It says
how many *free* selections go into each combination:

- Fixed selections (`is_fixed: true`) are added to every combination.
- The total stake is split evenly over all combinations.
- The maximum payout is the sum of the potential wins.
- The minimum payout is the smallest single win.

If no combination can be formed, processing fails.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
ticketsys [--dsn FILE] [--host ADDRESS] [--port PORT]
```

| Option   | Default      | Meaning                                 |
|----------|--------------|-----------------------------------------|
| `--dsn`  | `tickets.db` | SQLite database file                    |
| `--host` | (empty)      | Address to listen on; empty means all   |
| `--port` | `8080`       | Port to listen on                       |

On start the command does the following:

1. It opens the database.
2. It creates the `tickets`, `selections` and `combinations` tables if they
   are missing.
3. It serves the application with the standard library's WSGI server until
   interrupted.

It exits with status 1 in either of these cases:

- the database cannot be opened or prepared;
- the server cannot start.

The application is also available as a plain WSGI callable, so it can be
mounted in another WSGI server:

```python
from ticketsys.app import create_app
from ticketsys.db import DBManager

db = DBManager("tickets.db")
db.create_schema()
application = create_app(db)
```

## Submitting a ticket

There is one endpoint, `/ticket`. Any other path gets `404`.

The endpoint accepts only `POST`; any other method gets
`405 Method Not Allowed`. The body is a JSON object describing a ticket and
its selections.

Field names are matched without regard to case or underscores, so
`total_stake` and `TotalStake` are the same field. Unknown fields and `null`
values are ignored.

Timestamps are RFC 3339 strings. `0001-01-01T00:00:00Z` counts as no date.

```json
{
  "total_stake": 100,
  "ticket_type": "system",
  "system_combination": "2/3",
  "selections": [
    {"home_team": "Home", "away_team": "Away", "event_date": "2025-06-07T18:00:00Z",
     "odd_value": 1.8, "stake": 100, "is_fixed": true},
    {"event_date": "2025-06-07T20:00:00Z", "odd_value": 2.1, "stake": 100},
    {"event_date": "2025-06-07T20:00:00Z", "odd_value": 1.5, "stake": 100},
    {"event_date": "2025-06-08T16:00:00Z", "odd_value": 3.0, "stake": 100}
  ]
}
```

The reply is `400 Bad Request` in these cases:

- The body is not valid JSON, or a field has the wrong type.
- The total stake is not positive (`Invalid total stake`).
- There are no selections (`No selections provided`).
- A selection has a non-positive odd or stake, or no event date
  (`Invalid selection data`).

If storing or processing fails, the reply is `500` with the error message.

On success the reply is `201 Created` with the new ticket's id:

```json
{"ticket_id": 42}
```

When a ticket is stored, defaults are filled in:

- A missing status becomes `"pending"`.
- A missing creation time becomes the current time.
- Negative hit, miss and pending counts become 0.

## Using the library

```python
from ticketsys.combinatorics import binom, generate_combinations

binom(4, 2)                          # 6
generate_combinations([1, 2, 3], 2)  # [[1, 2], [1, 3], [2, 3]]
```

### `ticketsys.models`

- `Ticket` and `Selection`: what clients submit. Both provide `from_dict` for
  decoding a JSON object.
- `DBTicket`, `DBSelection` and `DBCombination`: row records.

### `ticketsys.db`

`DBManager(dsn)` opens an SQLite connection and serialises access to it.
Its methods:

- `create_schema()`
- `exec()`, which returns an `ExecResult`
- `query()`, which returns rows as tuples
- `begin_transaction()`, which returns a `Transaction`
- `close()`

A `Transaction` commits on success and rolls back on error when used in a
`with` block. `DBManager` is also a context manager, and leaving it closes
the connection.

### `ticketsys.services`

- `TicketService.create_ticket(ticket)` stores a ticket.
- `TicketService.process_ticket(ticket)` stores a ticket and then computes
  its combinations.
- `SystemTicketService.process_system_ticket(ticket_id, ticket)` expands a
  stored system ticket.
- The helpers `parse_int`, `find_min_k` and `calculate_odds` are also here.

Failures raise `TicketProcessingError`. Its `ticket_id` is set once the ticket
has been stored.

### `ticketsys.table_service`

`TableSystemTicketService` is an alternative system-ticket processor. It
differs from `SystemTicketService` in two ways:

- Here `k` counts the fixed selections too. A combination of size `k` holds
  every fixed selection plus `k - fixed` free ones.
- The number of combinations comes from the lookup table.

`process_ticket` does not use it.

### `ticketsys.combination_table`

- `COMBINATION_TABLE` holds combination counts for `n` up to 20.
- `build_table(max_n)` builds such a table.
- `lookup_combinations(k, n, fixed)` returns one count. It raises
  `MissingCombinationError` for a key the table lacks.

### `ticketsys.table_keys`

`table_key`, `parse_table_key` and `TableKey` handle the `"k/n/fixed"` keys.

### `ticketsys.handlers`

- `TicketHandler` is the WSGI handler for `/ticket`.
- `validate_ticket` performs the checks listed above and raises
  `ValidationError`.

## What it does not do

- Stored tickets cannot be read back over HTTP. The only endpoint creates
  tickets.
- Tickets are never settled. Nothing records event outcomes or updates hits,
  misses, statuses or final payouts after a ticket is stored.
- Storage is SQLite only. The `--dsn` option is a file path (or `:memory:`).
  It is not a connection string for a database server.
- There is no authentication. The `user_id` of a ticket is taken as sent and
  is not checked.