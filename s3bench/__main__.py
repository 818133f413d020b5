from s3bench.cli import main

main()
