import sys

import db
from constants import DB_PATH
from formatting import paragraph_row, publication_label


def dump(acronym=None, db_path=DB_PATH):
    pubs = db.get_publications(db_path)
    if acronym is None:
        if not pubs:
            print('No cached publications in', db_path)
        for p in pubs:
            print(publication_label(p['acronym'], p['title']))
        return

    match = [p for p in pubs if p['acronym'] == acronym]
    if not match:
        print('Publication not cached:', acronym)
        return
    print(publication_label(acronym, match[0]['title']))
    for tp in db.get_topics(acronym, db_path):
        print(' ', tp['topic'])
        for rb in db.get_rulebooks(tp['topic_key'], db_path):
            print('   ', rb['rb_name'])
            for st in db.get_sections(rb['rb_key'], db_path):
                print('     ', st['sect_name'])
                for pg in db.get_paragraphs(st['section_key'], db_path):
                    print('       ', paragraph_row(pg, ''))


if __name__ == '__main__':
    acronym = sys.argv[1] if len(sys.argv) > 1 else None
    dump(acronym)
