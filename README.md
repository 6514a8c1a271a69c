# metatube

Metadata providers for movie catalogue sites. Each provider fetches a
work's page, reads its title, summary, cast, genres, images, runtime and
release date, and returns them as a `MovieInfo` record. Some providers can
also search by keyword or collect user reviews, and one provider returns
actor portraits.

## Installation

```
pip install .
```

To run the tests, install the test extra and run pytest:

```
pip install ".[test]"
pytest
```

## Usage

```python
from metatube.providers.caribbeancom import Caribbeancom

provider = Caribbeancom()
movie_id = provider.normalize_movie_id("050422-001")
info = provider.get_movie_info_by_id(movie_id)
if info.is_valid():
    print(info.title, info.release_date, info.actors)

for review in provider.get_movie_reviews_by_id(movie_id):
    print(review.author, review.score, review.comment)
```

Providers that support search return `MovieSearchResult` records:

```python
from metatube.providers.dahlia import Dahlia

dahlia = Dahlia()
for result in dahlia.search_movie(dahlia.normalize_movie_keyword("DLDSS-287")):
    print(result.id, result.number, result.title)
```

Actor lookups work the same way:

```python
from metatube.providers.gfriends import GFriends

info = GFriends().get_actor_info_by_id("小松凛花")
print(info.images)
```

### Providers

| Module | Classes |
| --- | --- |
| `metatube.providers.h0930` | `H0930`, `C0930`, `H4610` |
| `metatube.providers.caribbeancom` | `Caribbeancom`, `CaribbeancomPremium` |
| `metatube.providers.dahlia` | `Dahlia`, `Faleno` |
| `metatube.providers.fanza` | `Fanza` |
| `metatube.providers.fc2` | `FC2` |
| `metatube.providers.fc2hub` | `FC2Hub` |
| `metatube.providers.duga` | `Duga` |
| `metatube.providers.gcolle` | `Gcolle` |
| `metatube.providers.gfriends` | `GFriends` |
| `metatube.providers.heydouga` | `HeyDouga` |
| `metatube.providers.aventertainments` | `AVE` |

Movie providers are built on `metatube.provider.Scraper`, an HTTP client
bound to one site (a `requests.Session` with a browser user agent and any
site cookies), with `fetch` and `fetch_html` methods.

### Registry

Each provider module registers a factory under its provider's name when it
is imported. You can list the registered factories and build fresh
instances:

```python
import metatube.providers.fanza
from metatube.provider import iter_movie_factories, iter_actor_factories

for name, factory in iter_movie_factories():
    print(name, factory().priority)
```

### Errors

Failures are raised as subclasses of `metatube.provider.ProviderError`,
each carrying an HTTP-style `status_code`: `InvalidIDError`,
`InvalidURLError`, `InvalidKeywordError`, `InfoNotFoundError`,
`ImageNotFoundError`, `ProviderNotFoundError` and
`IncompleteMetadataError`. A page that answers with an error status also
raises `ProviderError`. `metatube.providers.fanza.RegionNotAvailableError`
is raised by `Fanza.search_movie` when the site redirects to its
not-available-in-your-region page.

### Helpers

`metatube.provider` also offers the text parsers the providers share:
`parse_date`, `parse_runtime`, `parse_score`, `parse_texts` and
`parse_id_to_number`. `metatube.providers.fanza_number` converts catalogue
ids to display numbers (`parse_number("ssis00123") == "SSIS-123"`),
resolves full-size image URLs (`preview_src`) and reads scores from rating
image URLs (`parse_score_from_url`). `metatube.providers.fc2.parse_number`
extracts the bare number from FC2 ids such as `FC2-PPV-738573`.

## What it does not do

This is a library only. It has no command-line program, no HTTP server,
and no storage or caching of fetched metadata; every call goes to the
site. It does not merge results across providers or pick the best one;
that is left to the caller, who can use each provider's `priority`.