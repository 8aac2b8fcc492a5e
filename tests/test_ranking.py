"""Tests for MusicBrainz candidate ranking"""

from ytplaylist.musicbrainz.models import ArtistCandidate, Medium, ReleaseCandidate
from ytplaylist.musicbrainz.ranking import (
    artist_rank_key,
    dedupe_by_title,
    rank_unique,
    release_rank_key,
    strip_parenthetical,
)


def release(release_id, title="Album", status="Official", tracks=(10,)):
    return ReleaseCandidate(
        release_id=release_id,
        title=title,
        status=status,
        media=tuple(Medium(format="CD", track_count=count) for count in tracks),
    )


class TestRankUnique:
    """Test the generic ranking helper"""

    def test_empty(self):
        result = rank_unique([], key=lambda value: value)
        assert result.best is None
        assert not result.inconclusive

    def test_unique_best(self):
        result = rank_unique([3, 1, 2], key=lambda value: value)
        assert result.best == 1
        assert result.tied == [1]

    def test_tie_at_top(self):
        result = rank_unique(["bb", "aa", "c"], key=lambda value: -len(value))
        assert result.best is None
        assert result.inconclusive
        assert result.tied == ["bb", "aa"]


class TestArtistRanking:
    """Score, then exact name, then alias"""

    def test_higher_score_wins(self):
        a = ArtistCandidate("1", "Queen", score=90)
        b = ArtistCandidate("2", "Queen", score=100)
        assert rank_unique([a, b], artist_rank_key("Queen")).best is b

    def test_exact_name_breaks_score_tie(self):
        a = ArtistCandidate("1", "queen", score=100)
        b = ArtistCandidate("2", "Queen", score=100)
        assert rank_unique([a, b], artist_rank_key("Queen")).best is b

    def test_alias_breaks_name_tie(self):
        a = ArtistCandidate("1", "Prince", score=100)
        b = ArtistCandidate("2", "The Artist", score=100, aliases=("prince",))
        c = ArtistCandidate("3", "Other", score=100)
        result = rank_unique([c, b], artist_rank_key("Prince"))
        assert result.best is b
        assert rank_unique([a, b], artist_rank_key("Prince")).best is a

    def test_full_tie_is_inconclusive(self):
        a = ArtistCandidate("1", "Nirvana", score=100, disambiguation="US grunge")
        b = ArtistCandidate("2", "Nirvana", score=100, disambiguation="UK 60s")
        result = rank_unique([a, b], artist_rank_key("Nirvana"))
        assert result.inconclusive
        assert result.tied == [a, b]


class TestReleaseRanking:
    """Official, then has media, then fewer discs, then more tracks"""

    def test_official_first(self):
        bootleg = release("1", status="Bootleg", tracks=(20,))
        official = release("2", status="Official", tracks=(5,))
        assert rank_unique([bootleg, official], release_rank_key).best is official

    def test_status_is_case_insensitive(self):
        assert release_rank_key(release("1", status="official")) == release_rank_key(release("2"))

    def test_media_first(self):
        bare = release("1", tracks=())
        listed = release("2", tracks=(12,))
        assert rank_unique([bare, listed], release_rank_key).best is listed

    def test_fewer_discs_first(self):
        double = release("1", tracks=(10, 10))
        single = release("2", tracks=(8,))
        assert rank_unique([double, single], release_rank_key).best is single

    def test_more_tracks_first_on_single_disc(self):
        short = release("1", tracks=(10,))
        deluxe = release("2", tracks=(14,))
        assert rank_unique([short, deluxe], release_rank_key).best is deluxe

    def test_track_count_ignored_between_multi_disc_releases(self):
        a = release("1", tracks=(10, 10))
        b = release("2", tracks=(12, 12))
        assert rank_unique([a, b], release_rank_key).inconclusive

    def test_dedupe_keeps_first_of_each_title(self):
        a = release("1", title="Album")
        b = release("2", title="Album")
        c = release("3", title="Single")
        assert dedupe_by_title([a, b, c]) == [a, c]


class TestStripParenthetical:
    """Titles and artists are searched without parenthetical suffixes"""

    def test_strip(self):
        assert strip_parenthetical("Song (Remastered 2011)") == "Song"
        assert strip_parenthetical("Song (feat. X) (Live)") == "Song"
        assert strip_parenthetical("Song") == "Song"
        assert strip_parenthetical("(Intro)") == ""
