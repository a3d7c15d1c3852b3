"""
Static category tree used when the live site cannot be reached.
"""
from typing import List

from .config import config
from .models import Category


_TREE = [
    ("Транспорт", "/all/transport", [
        ("Автомобили", "/all/avtomobili"),
        ("Мотоциклы и мототехника", "/all/mototsikly_i_mototehnika"),
        ("Грузовики и спецтехника", "/all/gruzoviki_i_spetstehnika"),
        ("Водный транспорт", "/all/vodnyy_transport"),
        ("Запчасти и аксессуары", "/all/zapchasti_i_aksessuary"),
    ]),
    ("Недвижимость", "/all/nedvizhimost", [
        ("Квартиры", "/all/kvartiry"),
        ("Комнаты", "/all/komnaty"),
        ("Дома, дачи, коттеджи", "/all/doma_dachi_kottedzhi"),
        ("Земельные участки", "/all/zemelnye_uchastki"),
        ("Гаражи и машиноместа", "/all/garazhi_i_mashinomesta"),
        ("Коммерческая недвижимость", "/all/kommercheskaya_nedvizhimost"),
    ]),
    ("Работа", "/all/rabota", [
        ("Вакансии", "/all/vakansii"),
        ("Резюме", "/all/rezume"),
    ]),
    ("Услуги", "/all/predlozheniya_uslug", []),
    ("Личные вещи", "/all/lichnye_veschi", [
        ("Одежда, обувь, аксессуары", "/all/odezhda_obuv_aksessuary"),
        ("Детская одежда и обувь", "/all/detskaya_odezhda_i_obuv"),
        ("Часы и украшения", "/all/chasy_i_ukrasheniya"),
        ("Красота и здоровье", "/all/krasota_i_zdorove"),
    ]),
    ("Для дома и дачи", "/all/dlya_doma_i_dachi", [
        ("Ремонт и строительство", "/all/remont_i_stroitelstvo"),
        ("Мебель и интерьер", "/all/mebel_i_interer"),
        ("Бытовая техника", "/all/bytovaya_tehnika"),
        ("Растения", "/all/rasteniya"),
    ]),
    ("Электроника", "/all/elektronika", [
        ("Телефоны", "/all/telefony"),
        ("Ноутбуки", "/all/noutbuki"),
        ("Настольные компьютеры", "/all/nastolnye_kompyutery"),
        ("Аудио и видео", "/all/audio_i_video"),
        ("Фототехника", "/all/fototehnika"),
    ]),
    ("Хобби и отдых", "/all/hobbi_i_otdyh", [
        ("Билеты и путешествия", "/all/bilety_i_puteshestviya"),
        ("Велосипеды", "/all/velosipedy"),
        ("Книги и журналы", "/all/knigi_i_zhurnaly"),
        ("Спорт и отдых", "/all/sport_i_otdyh"),
    ]),
    ("Животные", "/all/zhivotnye", [
        ("Собаки", "/all/sobaki"),
        ("Кошки", "/all/koshki"),
        ("Товары для животных", "/all/tovary_dlya_zhivotnyh"),
    ]),
    ("Для бизнеса", "/all/dlya_biznesa", []),
]


def fallback_categories(base_url: str = config.BASE_URL) -> List[Category]:
    """A fresh copy of the static tree with absolute URLs."""
    origin = base_url.rstrip("/")
    return [
        Category(
            name=name,
            url=origin + path,
            subcategories=[Category(name=sub_name, url=origin + sub_path) for sub_name, sub_path in subs],
        )
        for name, path, subs in _TREE
    ]
