# tgprober

A Telegram bot that watches a set of TCP endpoints. A background task
repeatedly opens TCP connections to every target, and for each round it
stores the average connect latency and the loss rate in a local SQLite
database. Group chats that an admin has subscribed can then ask for live
probes, a latency chart or an uptime summary.

## Installation

```
pip install .
```

## Configuration

The bot reads a TOML file, `config.toml` in the working directory by default:

```toml
token = "token"
log_level = "info"            # optional, defaults to "info"
admins = [11111111]
probe_count = 5

[[targets]]
address = "192.0.2.10:443"
alias = "edge-1"

[[targets]]
address = "[2001:db8::1]:22"
alias = "backup"
```

- `token`: the bot token.
- `log_level`: one of `off`, `error`, `warn`, `info`, `debug`, `trace`.
- `admins`: Telegram user ids allowed to subscribe or unsubscribe a chat.
- `probe_count`: the number of connection attempts per target in each round.
  It also sets the pause, in seconds, between background rounds.
- `targets`: each needs an `address` written as an IP literal with a port
  (`ip:port` or `[ipv6]:port`; host names are not accepted) and an `alias`.

Each connection attempt times out after one second. A malformed file or a
missing field stops the program with an error message and exit status 1.

## Running

```
tgprober
```

Options:

- `--config PATH`: configuration file (default `config.toml`)
- `--db PATH`: SQLite database file (default `db.db`)

The program polls Telegram for updates until interrupted.

## Bot commands

The bot answers only in group, supergroup and channel chats. Commands take no
arguments; a command followed by other text is ignored.

| Command     | What it does                                                            |
|-------------|-------------------------------------------------------------------------|
| `/start`    | Subscribe this chat (admins only)                                       |
| `/stop`     | Unsubscribe this chat (admins only)                                     |
| `/isonline` | Post a placeholder, probe every target now, then edit in the results    |
| `/graph`    | Send a JPEG latency chart of the last hour                              |
| `/uptime`   | Show the summed loss per 15-minute window of the last hour as squares   |

`/isonline` and `/graph` reply only in subscribed chats; `/uptime` replies in
any group chat. In the uptime summary 🟩 means a summed loss of at most 50 % in
the window, 🟨 more than 50 % but less than 100 %, and 🟥 100 % or more.

## Using it as a library

- `tgprober.config.load_config(path)` returns a `Config`.
- `tgprober.db.Database(path)` stores subscriptions and `Metric` rows.
- `tgprober.monitor.probe_target(target, count, timeout)` returns a
  `ProbeResult`; `parse_address` turns an address string into host and port.
- `tgprober.botapi.Bot` is a small async Bot API client built on httpx.
- `tgprober.uptime.bucket_losses` / `format_uptime` and
  `tgprober.graph.build_series` / `render_graph` produce the summaries.

## Limitations

- The `socks5_proxy` key is accepted in the configuration but is not applied:
  the bot always connects to Telegram directly.
- Updates are fetched only by long polling; webhooks are not supported.

## Development

```
pip install -e ".[test]"
pytest
```