# -*- coding: utf-8 -*-
"""Brands — keyword lexicon used as brand evidence in label text."""

from __future__ import annotations

from typing import FrozenSet

# Lowercase, punctuation-free (label text is normalized before lookup).
BRAND_LEXICON: FrozenSet[str] = frozenset(
    {
        # candy / confectionery
        "skittles", "mars", "snickers", "twix", "m m", "milky way", "haribo", "trolli",
        "hershey", "hersheys", "reeses", "kit kat", "kitkat", "cadbury", "lindt", "ghirardelli",
        "starburst", "nerds", "sour patch", "swedish fish", "jolly rancher", "twizzlers",
        "ferrero", "toblerone", "russell stover", "brach", "airheads", "laffy taffy",
        # retailer / private label
        "trader joe s", "trader joes", "trader", "kirkland", "great value", "365",
        "whole foods", "good gather", "market pantry", "signature select", "simple truth",
        "aldi", "costco", "wegmans", "publix", "kroger", "safeway",
        # cereal / breakfast
        "kellogg", "kelloggs", "cheerios", "general mills", "quaker", "nature s path",
        "natures path", "cascadian farm", "kashi", "bear naked", "special k", "frosted flakes",
        "froot loops", "lucky charms", "cinnamon toast crunch", "honey nut", "nutrail", "magic spoon",
        # snacks / bars
        "clif", "rxbar", "larabar", "quest", "nature valley", "kodiak", "pure protein",
        "oreo", "chips ahoy", "ritz", "triscuit", "wheat thins", "goldfish", "cheez it",
        "pringles", "lays", "doritos", "cheetos", "tostitos", "fritos", "ruffles", "sunchips",
        "cape cod", "pirate s booty", "skinnypop", "smartfood", "popchips",
        "annie s", "annies", "belvita", "nabisco", "pepperidge farm", "keebler", "little debbie",
        "blue diamond", "planters", "sahale", "snyder s", "rold gold",
        # dairy / yogurt
        "chobani", "fage", "oikos", "dannon", "yoplait", "siggi s", "noosa", "stonyfield",
        "tillamook", "kraft", "philadelphia", "sargento", "babybel", "horizon", "fairlife",
        "ben jerry s", "ben jerrys", "haagen dazs", "halo top", "breyers", "talenti",
        # beverages
        "coca cola", "coke", "pepsi", "sprite", "fanta", "dr pepper", "mountain dew", "gatorade",
        "powerade", "red bull", "monster", "celsius", "la croix", "lacroix", "bubly", "spindrift",
        "vitaminwater", "tropicana", "minute maid", "ocean spray", "snapple",
        "arizona", "starbucks", "dunkin", "nespresso", "silk", "oatly", "califia", "almond breeze",
        # pantry
        "heinz", "barilla", "ragu", "prego", "rao s", "campbell s", "campbells", "progresso",
        "nestle", "nutella", "jif", "skippy", "smucker s", "hellmann s", "french s",
        "hidden valley", "newman s own", "bush s", "goya", "uncle ben s", "old el paso",
        "knorr", "maggi", "kikkoman", "lee kum kee", "sriracha", "tabasco", "mccormick",
        "dave s killer bread", "sara lee", "nature s own",
        # frozen / protein
        "amy s", "lean cuisine", "stouffer s", "healthy choice", "digiorno", "totino s",
        "eggo", "birds eye", "green giant", "tyson", "perdue", "oscar mayer", "hormel",
        "beyond meat", "morningstar", "boca", "gardein", "applegate", "hillshire farm",
        "starkist", "bumble bee", "chicken of the sea",
    }
)

MULTI_WORD_BRANDS: FrozenSet[str] = frozenset(b for b in BRAND_LEXICON if " " in b)
