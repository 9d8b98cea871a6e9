# gator

gator is a small command-line RSS aggregator. You register users, add the
feeds you care about, follow feeds other users have added, and let the
aggregator collect posts on a fixed interval. Collected posts can then be
browsed from the terminal. Everything is stored in a SQLite database.

## Configuration

gator reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before any command is run:

```json
{
  "db_url": "/home/you/.gator.db",
  "current_user_name": ""
}
```

- `db_url` names the SQLite database. It may be a file path, a
  `sqlite://` URL (`sqlite:///home/you/.gator.db`), or `:memory:`; an empty
  value also means an in-memory database. URLs with any other scheme are
  rejected. The tables are created on first use.
- `current_user_name` is the logged-in user. gator rewrites the file when
  you `register`, `login` or `reset`.

## Usage

Every command has the form `gator <command> [arguments]`.

### Users

```
gator register alice       # create a user and log in as them
gator login alice          # switch to an existing user
gator users                # list all users, marking the current one
gator reset                # delete every user, with their feeds, follows and posts
```

User names must be unique; registering a taken name is an error.

### Feeds

```
gator addfeed "Example Blog" https://blog.example.com/rss.xml
gator feeds                # list every feed with its name, URL and owner
gator follow https://blog.example.com/rss.xml
gator following            # list feeds the current user follows
gator unfollow https://blog.example.com/rss.xml
```

`addfeed` makes the current user follow the new feed. `addfeed`, `follow`,
`following` and `unfollow` require a logged-in user. `follow` with no URL
does nothing.

### Collecting and reading posts

```
gator agg 1m               # fetch the least recently fetched feed every minute
gator browse               # show the 2 newest posts
gator browse 10            # show the 10 newest posts
```

`agg` takes a duration such as `500ms`, `30s`, `1m`, `1.5h` or `1h30m`; it
must be greater than zero. It runs until interrupted with Ctrl-C. After each
interval it fetches the feed that has gone longest without being fetched
(never-fetched feeds first) and stores its items as posts; items whose link
is already stored are skipped, and a failed fetch does not stop the loop.

`browse` lists posts by publication date, newest first; posts without a date
come first. The limit must be a whole number greater than zero.

## Using it from Python

- `gator.config.read_config(path=None)` loads the configuration into a
  `Config`; `Config.set_user` changes the current user and saves the file.
- `gator.database.connect(db_url)` opens the database and returns a
  `Queries` object with a method for every query the commands use. Failures
  raise `DatabaseError`, with `NoRowsError` and `UniqueViolationError` for
  missing rows and duplicate values. `Queries.transaction()` groups queries
  into one transaction.
- `gator.rss.parse_feed` and `gator.rss.fetch_feed` turn RSS documents into
  `RSSFeed` objects, unescaping HTML entities in titles and descriptions.
  `gator.rss.parse_time` reads publication dates in RFC 1123, RFC 822,
  RFC 850 and RFC 3339 forms, returning year 1 when none matches.
  `gator.rss.scrape_feed(db)` does one aggregation step and returns the new
  posts.
- `gator.main.init_commands()` builds the table of commands that
  `gator.main.main` dispatches to.

On error, gator prints a message and exits with status 1.

## Limits

- Only SQLite is supported; there is no support for a database server.
- Only RSS documents (`<channel>` with `<item>` entries) are read; Atom feeds
  yield no posts.
- Posts are shown as stored: titles, descriptions and dates, with no
  rendering of HTML in descriptions.