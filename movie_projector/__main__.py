import sys

from movie_projector.cli import main


sys.exit(main())
