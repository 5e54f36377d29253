import logging
from datetime import date

from models import MovieEntry, TimelineState, FIRST_POSITION
from .tracker import STATE_ROW_ID

logger = logging.getLogger(__name__)

# (title, description, image key, release date, runtime minutes, rating)
# listed in timeline order; position is the 1-based index.
TIMELINE = [
    ("Captain America: The First Avenger",
     "Steve Rogers, a frail army reject, becomes the super-soldier Captain America and fights the Red Skull in World War II.",
     "captain_america1", date(2011, 7, 22), 124, 6.9),
    ("Captain Marvel",
     "Carol Danvers becomes one of the universe's most powerful heroes when Earth is caught between two alien races.",
     "captain_marvel", date(2019, 3, 8), 123, 6.8),
    ("Iron Man",
     "After being held captive in an Afghan cave, billionaire Tony Stark builds a suit of armor to fight evil.",
     "iron_man1", date(2008, 5, 2), 126, 7.9),
    ("Iron Man 2",
     "With the world aware he is Iron Man, Tony Stark faces pressure from the government and a vengeful Ivan Vanko.",
     "iron_man2", date(2010, 5, 7), 124, 7.0),
    ("The Incredible Hulk",
     "Bruce Banner searches for a cure while the military hunts him and a new monster, the Abomination, emerges.",
     "incredible_hulk", date(2008, 6, 13), 112, 6.6),
    ("Thor",
     "The arrogant god Thor is cast out of Asgard to live among humans on Earth, where he learns humility.",
     "thor1", date(2011, 5, 6), 115, 7.0),
    ("The Avengers",
     "Nick Fury assembles a team of heroes to stop Loki and his alien army from enslaving humanity.",
     "avengers1", date(2012, 5, 4), 143, 8.0),
    ("Iron Man 3",
     "Tony Stark, shaken by the battle of New York, faces the Mandarin, an enemy who tears down his world.",
     "iron_man3", date(2013, 5, 3), 130, 7.1),
    ("Thor: The Dark World",
     "Thor fights to restore order across the cosmos when the Dark Elf Malekith seeks to plunge it into darkness.",
     "thor2", date(2013, 11, 8), 112, 6.8),
    ("Captain America: The Winter Soldier",
     "Steve Rogers and Black Widow uncover a conspiracy inside S.H.I.E.L.D. and face a mysterious assassin.",
     "captain_america2", date(2014, 4, 4), 136, 7.7),
    ("Guardians of the Galaxy",
     "A band of intergalactic criminals must work together to stop a fanatical warrior from destroying the universe.",
     "guardians1", date(2014, 8, 1), 121, 8.0),
    ("Guardians of the Galaxy Vol. 2",
     "The Guardians unravel the mystery of Peter Quill's true parentage while keeping their new family together.",
     "guardians2", date(2017, 5, 5), 136, 7.6),
    ("Avengers: Age of Ultron",
     "Tony Stark's peacekeeping program Ultron goes wrong, and the Avengers must stop it from ending humanity.",
     "avengers2", date(2015, 5, 1), 141, 7.3),
    ("Ant-Man",
     "Con man Scott Lang dons a suit that lets him shrink in scale but grow in strength to pull off a heist.",
     "ant_man1", date(2015, 7, 17), 117, 7.3),
    ("Captain America: Civil War",
     "Political involvement in the Avengers' affairs causes a rift between Captain America and Iron Man.",
     "captain_america3", date(2016, 5, 6), 147, 7.8),
    ("Black Panther",
     "T'Challa returns home to Wakanda to take the throne and is challenged by a dangerous enemy.",
     "black_panther", date(2018, 2, 16), 134, 7.3),
    ("Spider-Man: Homecoming",
     "Peter Parker balances high school life with being Spider-Man while facing the Vulture.",
     "spider_man1", date(2017, 7, 7), 133, 7.4),
    ("Doctor Strange",
     "After a career-ending accident, a brilliant surgeon is drawn into the world of the mystic arts.",
     "doctor_strange", date(2016, 11, 4), 115, 7.5),
    ("Thor: Ragnarok",
     "Imprisoned on the planet Sakaar, Thor must race against time to stop Hela and the destruction of Asgard.",
     "thor3", date(2017, 11, 3), 130, 7.9),
    ("Ant-Man and the Wasp",
     "Scott Lang teams up with Hope van Dyne and Dr. Hank Pym on a mission tied to the quantum realm.",
     "ant_man2", date(2018, 7, 6), 118, 7.0),
    ("Avengers: Infinity War",
     "The Avengers and their allies must stop Thanos before he collects all six Infinity Stones.",
     "avengers3", date(2018, 4, 27), 149, 8.4),
    ("Avengers: Endgame",
     "The remaining Avengers assemble once more to reverse Thanos' actions and restore the universe.",
     "avengers4", date(2019, 4, 26), 181, 8.4),
    ("Spider-Man: Far From Home",
     "Peter Parker's European school trip is interrupted when Nick Fury recruits him to face the Elementals.",
     "spider_man2", date(2019, 7, 2), 129, 7.4),
]


def timeline_entries():
    for position, (title, description, image_key, released, runtime, rating) in enumerate(TIMELINE, start=FIRST_POSITION):
        yield MovieEntry(
            title=title,
            description=description,
            image_key=image_key,
            release_date=released,
            runtime_minutes=runtime,
            timeline_position=position,
            rating=rating,
            watched=False,
        )


def seed_timeline(db) -> int:
    """Populate an empty store with the timeline; returns rows inserted."""
    if MovieEntry.query.count():
        return 0
    entries = list(timeline_entries())
    db.session.add_all(entries)
    state = db.session.get(TimelineState, STATE_ROW_ID)
    if state is None:
        db.session.add(TimelineState(id=STATE_ROW_ID, current_position=FIRST_POSITION))
    else:
        state.current_position = FIRST_POSITION
    db.session.commit()
    logger.info("Seeded %d timeline entries", len(entries))
    return len(entries)
