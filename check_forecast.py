from forecast_cache import schema
from forecast_cache.settings import resolve_db_path


def main():
    db_path = resolve_db_path()
    if not db_path.exists():
        print(f"No forecast database at {db_path}; run the sync worker first.")
        return
    with schema.open_store(db_path) as store:
        df = store.query_frame()
    if df.empty:
        print("Forecast cache is empty.")
        return
    print("Cached forecast:")
    print(df.to_string(index=False))


if __name__ == "__main__":
    main()
